# app/routers/vapi.py
# 음성 서비스(Vapi)가 직접 호출하는 엔드포인트
# - POST /api/vapi/generate : 질문 생성 워크플로우의 tool 호출
# - POST /api/vapi/webhook  : 콜 이벤트 수신 -> 세션 컨트롤러로 전달
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse

from app.deps import get_question_service, get_session_registry, verify_vapi_secret
from app.schemas.interview import GenerateQuestionsRequest
from app.services.question_generation_service import QuestionGenerationService
from app.services.vapi_client import translate_server_message
from app.services.voice_session import VoiceEvent, VoiceSessionRegistry

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/vapi", tags=["vapi"])


@router.get("/generate")
def generate_ping():
    return {"success": True, "data": "Thank you!"}


@router.post("/generate")
def generate_questions(
    body: GenerateQuestionsRequest,
    svc: QuestionGenerationService = Depends(get_question_service),
):
    result = svc.generate_and_store(
        type=body.type,
        role=body.role,
        level=body.level,
        techstack=body.techstack,
        amount=body.amount,
        user_id=body.userid,
    )
    if not result["success"]:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": result.get("message")},
        )
    return {"success": True}


@router.post("/webhook", dependencies=[Depends(verify_vapi_secret)])
def voice_webhook(
    payload: Dict[str, Any] = Body(...),
    registry: VoiceSessionRegistry = Depends(get_session_registry),
):
    message = payload.get("message") or {}
    translated = translate_server_message(message)
    if translated is None:
        logger.debug("[VAPI_WEBHOOK] ignored type=%s", message.get("type"))
        return {"ok": True}

    call_id, name, event_payload = translated
    controller = registry.get(call_id)
    if controller is None:
        logger.warning("[VAPI_WEBHOOK] unknown call_id=%s event=%s", call_id, name)
        raise HTTPException(status_code=404, detail={"message": "session_not_found", "detail": call_id})

    controller.dispatch(VoiceEvent(name, event_payload))
    return {"ok": True, "state": controller.state.value}
