# app/routers/sessions_voice.py

from typing import Dict
import logging

from fastapi import APIRouter, Depends, HTTPException

from app.config import settings
from app.deps import (
    get_current_user,
    get_feedback_service,
    get_session_registry,
    get_store,
    get_voice_client,
)
from app.schemas.interview import SessionStateResponse, StartSessionRequest
from app.services.feedback_service import FeedbackService
from app.services.supabase_client import SupabaseStore
from app.services.vapi_client import VapiClient
from app.services.voice_session import (
    INTERVIEW_MODE,
    SessionConfig,
    VoiceSessionController,
    VoiceSessionRegistry,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/sessions", tags=["voice-sessions"])


# --- 공통: 세션 가져오기 (소유권 검증 포함) ---

def _get_controller_or_404(registry: VoiceSessionRegistry, call_id: str, user_id: str) -> VoiceSessionController:
    controller = registry.get(call_id)
    if controller is None:
        raise HTTPException(status_code=404, detail={"message": "session_not_found"})
    if controller.config is None or controller.config.user_id != user_id:
        raise HTTPException(
            status_code=403,
            detail={"message": "forbidden", "detail": "User not authorized to access this session"},
        )
    return controller


def _serialize(call_id: str, controller: VoiceSessionController) -> SessionStateResponse:
    return SessionStateResponse(
        call_id=call_id,
        mode=controller.config.mode,
        state=controller.state.value,
        is_speaking=controller.is_speaking,
        transcript=list(controller.transcript),
        error=controller.error,
        feedback=controller.feedback_result,
    )


# --- POST: 음성 세션 시작 ---

@router.post("", response_model=Dict)
def start_session(
    body: StartSessionRequest,
    current_user=Depends(get_current_user),
    store: SupabaseStore = Depends(get_store),
    voice: VapiClient = Depends(get_voice_client),
    feedback_svc: FeedbackService = Depends(get_feedback_service),
    registry: VoiceSessionRegistry = Depends(get_session_registry),
):
    user_id = current_user["id"]

    # 사용자 당 진행 중 세션 하나 (중복 시작 409)
    if registry.is_running(user_id):
        raise HTTPException(status_code=409, detail={"message": "session_already_running"})

    questions = None
    if body.mode == INTERVIEW_MODE:
        if not body.interview_id:
            raise HTTPException(
                status_code=400,
                detail={"message": "invalid_request_body", "detail": "interview_id is required for conduct-interview"},
            )
        interview = store.get_interview_by_id(body.interview_id)
        if not interview:
            raise HTTPException(status_code=404, detail={"message": "interview_not_found"})
        questions = interview.get("questions") or []

    config = SessionConfig(
        user_name=current_user.get("name") or "",
        user_id=user_id,
        mode=body.mode,
        interview_id=body.interview_id,
        feedback_id=body.feedback_id,
        questions=questions,
    )

    def on_feedback(cfg: SessionConfig, transcript):
        return feedback_svc.create_feedback(
            interview_id=cfg.interview_id,
            user_id=cfg.user_id,
            transcript=transcript,
            feedback_id=cfg.feedback_id,
        )

    controller = VoiceSessionController(voice, on_feedback=on_feedback, workflow_id=settings.vapi_workflow_id)
    call = controller.start(config)
    registry.register(call.id, user_id, controller)

    logger.info("[VOICE_SESSION][POST] started call_id=%s user_id=%s mode=%s", call.id, user_id, body.mode)
    return {
        "message": "session_started",
        "call_id": call.id,
        "web_call_url": call.web_call_url,
        "state": controller.state.value,
    }


# --- GET: 세션 상태/트랜스크립트 조회 ---

@router.get("/{call_id}", response_model=SessionStateResponse)
def get_session(
    call_id: str,
    current_user=Depends(get_current_user),
    registry: VoiceSessionRegistry = Depends(get_session_registry),
):
    controller = _get_controller_or_404(registry, call_id, current_user["id"])
    return _serialize(call_id, controller)


# --- DELETE: 세션 종료 ---

@router.delete("/{call_id}", response_model=SessionStateResponse)
def stop_session(
    call_id: str,
    current_user=Depends(get_current_user),
    registry: VoiceSessionRegistry = Depends(get_session_registry),
):
    controller = _get_controller_or_404(registry, call_id, current_user["id"])
    controller.stop()
    logger.info("[VOICE_SESSION][DELETE] stopped call_id=%s state=%s", call_id, controller.state.value)
    return _serialize(call_id, controller)
