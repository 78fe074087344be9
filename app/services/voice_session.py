# app/services/voice_session.py
"""
음성 면접 세션 컨트롤러

idle -> connecting -> active -> ended
   (어느 진행 상태에서든) -> failed

- 음성 서비스 이벤트(call-start, call-end, message, speech-start, speech-end, error)를
  한 번에 하나씩 dispatch()로 처리한다.
- active 동안 final transcript 메시지만 트랜스크립트에 추가한다.
- ended 진입 시 트랜스크립트를 고정(tuple)하고, conduct-interview 모드이면서
  트랜스크립트가 있으면 피드백 핸들러를 정확히 한 번 호출한다.
"""
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from app.schemas.interview import SessionMode, TranscriptEntry
from app.services.interviewer import build_interviewer_assistant, format_questions
from app.errors import ExternalServiceError
from app.services.vapi_client import VapiClient, VoiceCall

logger = logging.getLogger(__name__)

GENERATE_MODE = "generate-questions"
INTERVIEW_MODE = "conduct-interview"


class CallStatus(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    ENDED = "ended"
    FAILED = "failed"


class InvalidTransition(Exception):
    pass


@dataclass(frozen=True)
class SessionConfig:
    user_name: str
    user_id: str
    mode: SessionMode
    interview_id: Optional[str] = None
    feedback_id: Optional[str] = None
    questions: Optional[List[str]] = None


@dataclass(frozen=True)
class VoiceEvent:
    name: str
    payload: Dict[str, Any] = field(default_factory=dict)


# (config, frozen transcript) -> {"success": ..., "feedback_id": ...}
FeedbackHandler = Callable[[SessionConfig, Tuple[TranscriptEntry, ...]], Dict[str, Any]]


class VoiceSessionController:
    def __init__(
        self,
        voice: VapiClient,
        on_feedback: Optional[FeedbackHandler] = None,
        workflow_id: Optional[str] = None,
    ):
        self.voice = voice
        self.workflow_id = workflow_id
        self.on_feedback = on_feedback
        self._lock = threading.Lock()
        self._reset_state()

    def _reset_state(self) -> None:
        self.state = CallStatus.IDLE
        self.config: Optional[SessionConfig] = None
        self.call: Optional[VoiceCall] = None
        self.is_speaking = False
        self.error: Optional[str] = None
        self.feedback_result: Optional[Dict[str, Any]] = None
        self._messages: List[TranscriptEntry] = []
        self._frozen: Optional[Tuple[TranscriptEntry, ...]] = None

    @property
    def transcript(self) -> Tuple[TranscriptEntry, ...]:
        if self._frozen is not None:
            return self._frozen
        return tuple(self._messages)

    # ---------- Commands ----------

    def start(self, config: SessionConfig) -> VoiceCall:
        with self._lock:
            if self.state != CallStatus.IDLE:
                raise InvalidTransition(f"cannot start from {self.state.value}")

            self.config = config
            self.state = CallStatus.CONNECTING
            logger.info("[VOICE_SESSION] connecting user_id=%s mode=%s", config.user_id, config.mode)

            try:
                if config.mode == GENERATE_MODE:
                    if not self.workflow_id:
                        raise ExternalServiceError("vapi", "VAPI_WORKFLOW_ID is not configured")
                    call = self.voice.start(
                        workflow_id=self.workflow_id,
                        variable_values={"username": config.user_name, "userid": config.user_id},
                    )
                else:
                    call = self.voice.start(
                        assistant=build_interviewer_assistant(),
                        variable_values={"questions": format_questions(config.questions)},
                    )
            except Exception as e:
                self._fail(str(e))
                raise

            self.call = call
            return call

    def stop(self) -> None:
        """명시적 종료. 음성 서비스에 end-call을 보내고 ended로 전이."""
        with self._lock:
            if self.state not in (CallStatus.CONNECTING, CallStatus.ACTIVE):
                return
            if self.call is not None:
                try:
                    self.voice.stop(self.call)
                except ExternalServiceError as e:
                    # 콜은 이미 끊겼거나 곧 끊김, 로컬 세션은 그대로 종료
                    logger.warning("[VOICE_SESSION] end-call failed call_id=%s error=%s", self.call.id, e)
            self._end()

    def reset(self) -> None:
        with self._lock:
            if self.state not in (CallStatus.ENDED, CallStatus.FAILED):
                raise InvalidTransition(f"cannot reset from {self.state.value}")
            self._reset_state()

    # ---------- Events ----------

    def dispatch(self, event: VoiceEvent) -> None:
        handler = self._handlers.get(event.name)
        if handler is None:
            raise ValueError(f"unknown voice event: {event.name}")
        with self._lock:
            handler(self, event.payload)

    def _on_call_start(self, payload: Dict[str, Any]) -> None:
        if self.state != CallStatus.CONNECTING:
            logger.debug("[VOICE_SESSION] ignore call-start in %s", self.state.value)
            return
        self.state = CallStatus.ACTIVE
        logger.info("[VOICE_SESSION] active call_id=%s", self.call.id if self.call else None)

    def _on_call_end(self, payload: Dict[str, Any]) -> None:
        if self.state not in (CallStatus.CONNECTING, CallStatus.ACTIVE):
            return
        self._end()

    def _on_message(self, payload: Dict[str, Any]) -> None:
        if self.state != CallStatus.ACTIVE:
            return
        if payload.get("type") != "transcript" or payload.get("transcriptType") != "final":
            return
        try:
            entry = TranscriptEntry.from_voice(payload.get("role"), payload.get("transcript") or "")
        except ValueError:
            logger.warning("[VOICE_SESSION] unknown speaker role=%s", payload.get("role"))
            return
        self._messages.append(entry)

    def _on_speech_start(self, payload: Dict[str, Any]) -> None:
        if self.state == CallStatus.ACTIVE:
            self.is_speaking = True

    def _on_speech_end(self, payload: Dict[str, Any]) -> None:
        if self.state == CallStatus.ACTIVE:
            self.is_speaking = False

    def _on_error(self, payload: Dict[str, Any]) -> None:
        if self.state in (CallStatus.ENDED, CallStatus.FAILED):
            return
        self._fail(str(payload.get("message") or payload or "voice error"))

    _handlers = {
        "call-start": _on_call_start,
        "call-end": _on_call_end,
        "message": _on_message,
        "speech-start": _on_speech_start,
        "speech-end": _on_speech_end,
        "error": _on_error,
    }

    # ---------- Transitions ----------

    def _fail(self, error: str) -> None:
        self.state = CallStatus.FAILED
        self.is_speaking = False
        self.error = error
        logger.error("[VOICE_SESSION] failed error=%s", error)

    def _end(self) -> None:
        self.state = CallStatus.ENDED
        self.is_speaking = False
        self._frozen = tuple(self._messages)
        logger.info("[VOICE_SESSION] ended lines=%s", len(self._frozen))

        if self.config.mode != INTERVIEW_MODE or not self._frozen:
            return
        if self.on_feedback is None:
            logger.warning("[VOICE_SESSION] no feedback handler, transcript dropped")
            return
        self.feedback_result = self.on_feedback(self.config, self._frozen)


class VoiceSessionRegistry:
    """
    call id -> 컨트롤러. 콜 하나에 컨트롤러 하나, 사용자 당 진행 중 세션 하나.
    사용자가 새 세션을 등록하면 이전에 끝난 세션은 지운다.
    """

    def __init__(self):
        self._sessions: Dict[str, VoiceSessionController] = {}
        self._by_user: Dict[str, str] = {}

    def current_for_user(self, user_id: str) -> Optional[VoiceSessionController]:
        call_id = self._by_user.get(user_id)
        return self._sessions.get(call_id) if call_id else None

    def is_running(self, user_id: str) -> bool:
        controller = self.current_for_user(user_id)
        return controller is not None and controller.state in (CallStatus.CONNECTING, CallStatus.ACTIVE)

    def register(self, call_id: str, user_id: str, controller: VoiceSessionController) -> None:
        if call_id in self._sessions:
            raise ValueError(f"call already registered: {call_id}")
        previous = self._by_user.get(user_id)
        if previous:
            self._sessions.pop(previous, None)
        self._sessions[call_id] = controller
        self._by_user[user_id] = call_id

    def get(self, call_id: str) -> Optional[VoiceSessionController]:
        return self._sessions.get(call_id)

    def __len__(self) -> int:
        return len(self._sessions)
