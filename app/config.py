# app/config.py


from dotenv import load_dotenv
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()  # .env 파일 먼저 읽기

BASE_DIR = Path(__file__).resolve().parent.parent

ONE_WEEK_SEC = 60 * 60 * 24 * 7


class Settings(BaseSettings):
    # 환경 구분
    app_env: str = "local"
    log_level: str = "INFO"

    # Supabase (document store + auth)
    supabase_url: str                               # SUPABASE_URL
    supabase_key: str                               # SUPABASE_KEY (anon)
    supabase_service_role_key: str | None = None    # 서버 쓰기용, 없으면 anon key 사용

    # OpenAI (질문/피드백 생성)
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"

    # Vapi (음성 AI)
    vapi_api_key: str | None = None
    vapi_base_url: str = "https://api.vapi.ai"
    vapi_workflow_id: str | None = None             # 질문 생성용 워크플로우/어시스턴트
    vapi_webhook_secret: str | None = None          # 웹훅 X-Vapi-Secret 헤더 값, 없으면 웹훅 전부 거부

    # 세션 쿠키
    session_secret: str                             # SESSION_SECRET
    session_cookie_name: str = "session"
    session_max_age: int = ONE_WEEK_SEC
    session_cookie_secure: bool = False

    # 목록 조회
    latest_interviews_limit: int = 20

    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),  # 루트 .env 절대경로
        env_file_encoding="utf-8",
        extra="ignore",                   # 필요 없는 env 무시
    )


settings = Settings()
