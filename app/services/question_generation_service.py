# app/services/question_generation_service.py

import logging
import random
from typing import Dict, List

from app.errors import ExternalServiceError, NotFoundError
from app.services.generation import TextGenerationService
from app.services.supabase_client import SupabaseStore

logger = logging.getLogger(__name__)

COVER_IMAGES = [
    "/adobe.png",
    "/amazon.png",
    "/facebook.png",
    "/hostinger.png",
    "/pinterest.png",
    "/quora.png",
    "/reddit.png",
    "/skype.png",
    "/spotify.png",
    "/telegram.png",
    "/tiktok.png",
    "/yahoo.png",
]


def get_random_interview_cover() -> str:
    return random.choice(COVER_IMAGES)


def split_techstack(techstack: str) -> List[str]:
    """'React, Node.js ,,TypeScript' -> ['React', 'Node.js', 'TypeScript']"""
    return [t.strip() for t in (techstack or "").split(",") if t.strip()]


class QuestionGenerationService:
    def __init__(self, generator: TextGenerationService, store: SupabaseStore):
        self.generator = generator
        self.store = store

    def generate_and_store(
        self,
        type: str,
        role: str,
        level: str,
        techstack: str,
        amount: int,
        user_id: str,
    ) -> Dict:
        """
        면접 질문 생성 요청을 받아서:
        1) LLM으로 amount개의 면접 질문을 생성하고
        2) interviews 테이블에 finalized=False로 저장한 후
        3) 저장이 끝나면 finalized=True로 표시

        Returns:
            {"success": True} 또는 {"success": False, "message": "..."}
        """
        logger.info("[QUESTION_GEN] START user_id=%s role=%s level=%s amount=%s", user_id, role, level, amount)

        try:
            questions = self.generator.generate_questions(role, level, techstack, type, amount)

            created = self.store.create_interview(
                {
                    "role": role,
                    "type": type,
                    "level": level,
                    "techstack": split_techstack(techstack),
                    "questions": questions,
                    "user_id": user_id,
                    "finalized": False,
                    "cover_image": get_random_interview_cover(),
                }
            )
            self.store.update_interview(created["id"], {"finalized": True})
        except (ExternalServiceError, NotFoundError) as e:
            logger.exception("[QUESTION_GEN] failed user_id=%s", user_id)
            return {"success": False, "message": str(e)}

        logger.info("[QUESTION_GEN] DONE interview_id=%s questions=%s", created["id"], len(questions))
        return {"success": True}
