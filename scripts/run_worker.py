#!/usr/bin/env python
"""
채점 Worker 단독 실행 스크립트
"""
import asyncio
import logging
import os
import sys

# 프로젝트 루트를 Python 경로에 추가
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

if __name__ == "__main__":
    from dotenv import load_dotenv

    load_dotenv()

    from judge_pipeline.application.workers.judge_worker import main
    from judge_pipeline.core.config import settings

    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
