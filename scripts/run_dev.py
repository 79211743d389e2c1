#!/usr/bin/env python
"""
개발 서버 실행 스크립트 (API + 내장 Worker)
"""
import os
import sys

# 프로젝트 루트를 Python 경로에 추가
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

if __name__ == "__main__":
    import uvicorn
    from dotenv import load_dotenv

    # 환경 변수 로드 (Worker를 API 프로세스에서 함께 실행)
    load_dotenv()
    os.environ.setdefault("ENABLE_JUDGE_WORKER", "true")

    uvicorn.run(
        "judge_pipeline.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="debug",
    )
