# app/deps.py
# 외부 서비스 핸들은 프로세스 당 한 번만 생성 (lru_cache)
# 테스트에서는 app.dependency_overrides로 가짜 객체를 주입한다.
from functools import lru_cache
import hmac
import logging

from fastapi import Depends, Header, HTTPException, Request
from supabase import Client

from app.config import settings
from app.services.feedback_service import FeedbackService
from app.services.generation import TextGenerationService, create_generation_service
from app.services.question_generation_service import QuestionGenerationService
from app.services.supa_auth import AuthService
from app.services.supabase_client import SupabaseStore, create_supabase
from app.services.vapi_client import VapiClient, create_vapi_client
from app.services.voice_session import VoiceSessionRegistry

logger = logging.getLogger(__name__)


# ----------------------------
# 외부 서비스 싱글톤
# ----------------------------
@lru_cache
def get_supabase() -> Client:
    return create_supabase()


@lru_cache
def get_store() -> SupabaseStore:
    return SupabaseStore(get_supabase())


@lru_cache
def get_generator() -> TextGenerationService:
    return create_generation_service()


@lru_cache
def get_voice_client() -> VapiClient:
    return create_vapi_client()


@lru_cache
def get_session_registry() -> VoiceSessionRegistry:
    return VoiceSessionRegistry()


# ----------------------------
# 서비스 조립
# ----------------------------
def get_question_service(
    generator: TextGenerationService = Depends(get_generator),
    store: SupabaseStore = Depends(get_store),
) -> QuestionGenerationService:
    return QuestionGenerationService(generator, store)


def get_feedback_service(
    generator: TextGenerationService = Depends(get_generator),
    store: SupabaseStore = Depends(get_store),
) -> FeedbackService:
    return FeedbackService(generator, store)


def get_auth_service(
    client: Client = Depends(get_supabase),
    store: SupabaseStore = Depends(get_store),
) -> AuthService:
    return AuthService(client, store, settings.session_secret, settings.session_max_age)


# ----------------------------
# 현재 사용자 가져오기 (세션 쿠키)
# ----------------------------
def get_current_user(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
    store: SupabaseStore = Depends(get_store),
):
    token = request.cookies.get(settings.session_cookie_name)
    try:
        claims = auth.verify_session(token)
    except ValueError as e:
        logger.info("[AUTH] verify_session failed: %s", e)
        raise HTTPException(status_code=401, detail={"message": "unauthorized", "detail": str(e)})

    user = store.get_user(claims["user_id"])
    if user is None:
        raise HTTPException(status_code=401, detail={"message": "unauthorized", "detail": "user not found"})

    return {
        "id": claims["user_id"],
        "email": claims.get("email") or user.get("email"),
        "name": user.get("name"),
    }


# ----------------------------
# Vapi 웹훅 검증 (X-Vapi-Secret)
# ----------------------------
def verify_vapi_secret(x_vapi_secret: str | None = Header(None)) -> None:
    expected = settings.vapi_webhook_secret
    if not expected:
        logger.warning("[VAPI_WEBHOOK] VAPI_WEBHOOK_SECRET not configured, rejecting")
        raise HTTPException(status_code=401, detail={"message": "unauthorized", "detail": "webhook secret not configured"})
    if not x_vapi_secret or not hmac.compare_digest(x_vapi_secret, expected):
        raise HTTPException(status_code=401, detail={"message": "unauthorized", "detail": "invalid webhook secret"})
