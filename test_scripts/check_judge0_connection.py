"""
Judge0 연결 확인 스크립트

설정된 Judge0 서버에 Hello World 코드를 제출하고 결과를 폴링합니다.

[사용법]
python test_scripts/check_judge0_connection.py [language]
"""
import asyncio
import sys
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from judge_pipeline.core.config import settings
from judge_pipeline.core.exceptions import JudgeError, JudgeTimeout, UnsupportedLanguage
from judge_pipeline.infrastructure.judge0.client import Judge0Client, parse_memory, parse_time


HELLO_WORLD = {
    "python": 'print("Hello, Judge0")',
    "javascript": 'console.log("Hello, Judge0")',
    "cpp": '#include <iostream>\nint main() { std::cout << "Hello, Judge0" << std::endl; }',
    "java": 'public class Main { public static void main(String[] a) { System.out.println("Hello, Judge0"); } }',
}


async def check_judge0_connection(language: str = "python"):
    """Judge0 서버 연결 및 실행 확인"""

    print("=" * 80)
    print("Judge0 연결 확인")
    print("=" * 80)
    print()

    # 설정 확인
    print("📋 현재 설정:")
    print(f"   JUDGE0_API_URL: {settings.JUDGE0_API_URL}")
    print(f"   JUDGE0_USE_RAPIDAPI: {settings.JUDGE0_USE_RAPIDAPI}")
    print(f"   JUDGE0_API_KEY: {'설정됨' if settings.JUDGE0_API_KEY else '미설정'}")
    print(f"   JUDGE0_POLL: {settings.JUDGE0_POLL_MAX_ATTEMPTS}회 x {settings.JUDGE0_POLL_INTERVAL_MS}ms")
    print()

    client = Judge0Client()
    await client.connect()
    try:
        language_id = client.get_language_id(language)
        source = HELLO_WORLD.get(language, HELLO_WORLD["python"])

        print(f"🔍 코드 제출 중... (language: {language}, id: {language_id})")
        token = await client.submit(source, language_id)
        print(f"   token: {token}")

        result = await client.poll_until_done(token)
        status = client.map_status(result["status"]["id"])

        print()
        print("✅ 실행 완료!")
        print(f"   Judge0 상태: {result['status'].get('description')}")
        print(f"   제출 상태: {status.value}")
        print(f"   stdout: {(result.get('stdout') or '').strip()}")
        print(f"   time: {parse_time(result.get('time'))}s, memory: {parse_memory(result.get('memory'))}KB")

    except UnsupportedLanguage as e:
        print(f"❌ {e.message} (지원 언어: {', '.join(e.details['supported'])})")

    except JudgeTimeout as e:
        print(f"❌ 타임아웃: {e.attempts}회 폴링 동안 결과가 나오지 않았습니다")
        print("   Judge0 Worker가 실행 중인지 확인하세요")

    except JudgeError as e:
        print(f"❌ 연결 실패: {str(e)}")
        print()
        print("🔧 해결 방법:")
        if settings.JUDGE0_USE_RAPIDAPI:
            print("   1. JUDGE0_API_KEY가 올바른지 확인 (.env)")
            print("   2. RapidAPI 대시보드에서 Judge0 API 구독 확인")
        else:
            print("   1. Judge0 서버가 실행 중인지 확인:")
            print(f"      curl {settings.JUDGE0_API_URL}/about")
            print("   2. .env 파일 확인:")
            print(f"      JUDGE0_API_URL={settings.JUDGE0_API_URL}")

    finally:
        await client.close()


if __name__ == "__main__":
    asyncio.run(check_judge0_connection(sys.argv[1] if len(sys.argv) > 1 else "python"))
