# app/services/vapi_client.py
# Vapi REST API 래퍼
# - start: 웹 콜 생성 (어시스턴트 정의 또는 워크플로우 id + 변수)
# - stop: 콜 control url로 end-call 전송
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import requests

from app.config import settings
from app.errors import ExternalServiceError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SEC = 30


@dataclass(frozen=True)
class VoiceCall:
    id: str
    web_call_url: Optional[str] = None
    control_url: Optional[str] = None


class VapiClient:
    def __init__(self, api_key: str, base_url: str = "https://api.vapi.ai", session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.http = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def start(
        self,
        assistant: Optional[Dict[str, Any]] = None,
        workflow_id: Optional[str] = None,
        variable_values: Optional[Dict[str, Any]] = None,
    ) -> VoiceCall:
        body: Dict[str, Any] = {}
        overrides = {"variableValues": variable_values or {}}
        if workflow_id:
            body["workflowId"] = workflow_id
            body["workflowOverrides"] = overrides
        elif assistant:
            body["assistant"] = assistant
            body["assistantOverrides"] = overrides
        else:
            raise ValueError("either assistant or workflow_id is required")

        try:
            r = self.http.post(
                f"{self.base_url}/call/web",
                json=body,
                headers=self._headers(),
                timeout=REQUEST_TIMEOUT_SEC,
            )
            r.raise_for_status()
            data = r.json()
        except requests.RequestException as e:
            raise ExternalServiceError("vapi", f"start call failed: {e}") from e

        call = VoiceCall(
            id=data["id"],
            web_call_url=data.get("webCallUrl"),
            control_url=(data.get("monitor") or {}).get("controlUrl"),
        )
        logger.info("[VAPI] call_created call_id=%s", call.id)
        return call

    def stop(self, call: VoiceCall) -> None:
        if not call.control_url:
            logger.warning("[VAPI] no control url, skip end-call call_id=%s", call.id)
            return
        try:
            r = self.http.post(
                call.control_url,
                json={"type": "end-call"},
                timeout=REQUEST_TIMEOUT_SEC,
            )
            r.raise_for_status()
        except requests.RequestException as e:
            raise ExternalServiceError("vapi", f"end call failed: {e}") from e
        logger.info("[VAPI] end_call_sent call_id=%s", call.id)


def translate_server_message(message: Dict[str, Any]) -> Optional[Tuple[str, str, Dict[str, Any]]]:
    """
    Vapi 서버 메시지 -> (call_id, 이벤트 이름, payload)
    세션 상태와 무관한 메시지는 None.
    """
    call_id = (message.get("call") or {}).get("id")
    if not call_id:
        return None

    mtype = message.get("type")

    if mtype == "status-update":
        status = message.get("status")
        if status == "in-progress":
            return call_id, "call-start", {}
        if status == "ended":
            reason = message.get("endedReason") or ""
            if "error" in reason:
                return call_id, "error", {"message": reason}
            return call_id, "call-end", {"endedReason": reason}
        return None

    if mtype == "end-of-call-report":
        return call_id, "call-end", {"endedReason": message.get("endedReason")}

    if mtype == "transcript":
        return call_id, "message", {
            "type": "transcript",
            "transcriptType": message.get("transcriptType"),
            "role": message.get("role"),
            "transcript": message.get("transcript"),
        }

    if mtype == "speech-update" and message.get("role") == "assistant":
        if message.get("status") == "started":
            return call_id, "speech-start", {}
        if message.get("status") == "stopped":
            return call_id, "speech-end", {}
        return None

    return None


def create_vapi_client() -> VapiClient:
    if not settings.vapi_api_key:
        raise RuntimeError("VAPI_API_KEY 환경변수가 설정되어 있지 않습니다.")
    return VapiClient(settings.vapi_api_key, settings.vapi_base_url)
