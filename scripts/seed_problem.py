"""
샘플 문제를 DB에 저장하는 스크립트

[사용법]
python scripts/seed_problem.py

[저장되는 데이터]
- problems: "a-plus-b" (공개, CPU 1초, 메모리 128MB)
- problem_test_cases: 3개 (배점 1, 1, 2)
"""
import asyncio
import sys
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import delete

from judge_pipeline.infrastructure.persistence import Database
from judge_pipeline.infrastructure.persistence.models import ProblemRecord, ProblemTestCaseRecord


PROBLEM_ID = "a-plus-b"

TEST_CASES = [
    {"input": "1 2\n", "expected_output": "3\n", "points": 1},
    {"input": "-5 5\n", "expected_output": "0\n", "points": 1},
    {"input": "1000000000 1000000000\n", "expected_output": "2000000000\n", "points": 2},
]


async def seed_problem():
    """샘플 문제 생성 (이미 있으면 테스트 케이스를 교체)"""
    db = Database()
    await db.connect()
    try:
        await db.init_db()
        print("✅ 테이블 확인 완료")

        async with db.session() as session:
            problem = await session.get(ProblemRecord, PROBLEM_ID)
            if problem is None:
                problem = ProblemRecord(id=PROBLEM_ID)
                session.add(problem)
            problem.is_public = True
            problem.cpu_limit_sec = 1.0
            problem.memory_limit_kb = 131072
            problem.source_limit_bytes = None

            await session.execute(
                delete(ProblemTestCaseRecord).where(ProblemTestCaseRecord.problem_id == PROBLEM_ID)
            )
            for position, case in enumerate(TEST_CASES):
                session.add(ProblemTestCaseRecord(problem_id=PROBLEM_ID, position=position, **case))

        print(f"✅ 문제 저장 완료 - id: {PROBLEM_ID}, test_cases: {len(TEST_CASES)}")
    finally:
        await db.close()


if __name__ == "__main__":
    asyncio.run(seed_problem())
