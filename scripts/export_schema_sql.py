"""
ORM 모델 기반으로 스키마 SQL 생성
submissions 및 문제/대회 조회 테이블의 DDL을 파일로 저장 (운영 DB 마이그레이션 참고용)
"""
import sys
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex, CreateTable

from judge_pipeline.core.config import settings
from judge_pipeline.infrastructure.persistence import models  # noqa: F401
from judge_pipeline.infrastructure.persistence.session import Base


def export_schema_sql(output_file: str = "schema_from_models.sql") -> str:
    """ORM 모델 기반으로 스키마 SQL 생성"""

    print("=" * 80)
    print("ORM 모델 기반 스키마 SQL 생성")
    print("=" * 80)
    print()

    dialect = postgresql.dialect()
    statements = []

    # 외래 키 순서대로 정렬된 테이블
    for table in Base.metadata.sorted_tables:
        statements.append(str(CreateTable(table).compile(dialect=dialect)).strip() + ";")
        for index in table.indexes:
            statements.append(str(CreateIndex(index).compile(dialect=dialect)).strip() + ";")
        print(f"✅ 테이블 추가: {table.name}")

    with open(output_file, "w", encoding="utf-8") as f:
        f.write("-- ORM 모델 기반 스키마 생성 SQL\n")
        f.write(f"-- 데이터베이스: {settings.POSTGRES_DB}\n")
        f.write("\n")
        f.write("\n\n".join(statements))
        f.write("\n")

    print()
    print(f"✅ SQL 파일 생성 완료: {output_file}")
    return output_file


if __name__ == "__main__":
    export_schema_sql(*sys.argv[1:2])
