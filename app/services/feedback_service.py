# app/services/feedback_service.py
import logging
from typing import Any, Dict, Optional, Sequence

from app.errors import NotFoundError
from app.schemas.interview import TranscriptEntry
from app.services.generation import TextGenerationService
from app.services.supabase_client import SupabaseStore

logger = logging.getLogger(__name__)


def format_transcript(transcript: Sequence[TranscriptEntry]) -> str:
    """
    트랜스크립트를 프롬프트용 문자열로 변환

    [{candidate, "I know React"}, {interviewer, "Tell me more"}]
    -> "- candidate: I know React\\n- interviewer: Tell me more\\n"
    """
    return "".join(f"- {entry.role}: {entry.content}\n" for entry in transcript)


class FeedbackService:
    def __init__(self, generator: TextGenerationService, store: SupabaseStore):
        self.generator = generator
        self.store = store

    def _check_owner(self, feedback_id: str, interview_id: str, user_id: str) -> None:
        """덮어쓸 피드백은 같은 사용자, 같은 면접의 것이어야 한다. 아니면 없는 것으로 취급."""
        existing = self.store.get_feedback_by_id(feedback_id)
        if (
            existing is None
            or existing.get("user_id") != user_id
            or existing.get("interview_id") != interview_id
        ):
            raise NotFoundError("feedback", feedback_id)

    def create_feedback(
        self,
        interview_id: str,
        user_id: str,
        transcript: Sequence[TranscriptEntry],
        feedback_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        트랜스크립트로 피드백 생성 후 feedback 테이블에 저장
        - feedback_id가 있으면 해당 행을 덮어쓰고, 없으면 새로 생성
        - 생성/저장 중 어떤 예외도 밖으로 던지지 않고 {"success": False}로 변환

        Returns:
            {"success": True, "feedback_id": "..."} 또는 {"success": False, "message": "..."}
        """
        logger.info(
            "[FEEDBACK] START interview_id=%s user_id=%s lines=%s overwrite=%s",
            interview_id,
            user_id,
            len(transcript),
            feedback_id is not None,
        )

        try:
            if feedback_id:
                self._check_owner(feedback_id, interview_id, user_id)

            record = self.generator.generate_feedback(format_transcript(transcript))

            row = {
                "interview_id": interview_id,
                "user_id": user_id,
                **record.model_dump(),
            }
            if feedback_id:
                saved = self.store.overwrite_feedback(feedback_id, row)
            else:
                saved = self.store.create_feedback(row)
        except Exception as e:
            logger.exception("[FEEDBACK] failed interview_id=%s user_id=%s", interview_id, user_id)
            return {"success": False, "message": str(e)}

        logger.info(
            "[FEEDBACK] DONE feedback_id=%s total_score=%s",
            saved["id"],
            record.total_score,
        )
        return {"success": True, "feedback_id": saved["id"]}
