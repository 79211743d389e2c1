from judge_pipeline.infrastructure.persistence.session import Base, Database

__all__ = ["Base", "Database"]
