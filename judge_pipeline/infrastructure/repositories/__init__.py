from judge_pipeline.infrastructure.repositories.base import CatalogReader, SubmissionStore
from judge_pipeline.infrastructure.repositories.memory import MemoryCatalog, MemorySubmissionStore

__all__ = [
    "CatalogReader",
    "MemoryCatalog",
    "MemorySubmissionStore",
    "SubmissionStore",
]
