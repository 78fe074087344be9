# app/services/supabase_client.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional  # return type info

from supabase import create_client, Client

from app.config import settings
from app.errors import ExternalServiceError, NotFoundError

logger = logging.getLogger(__name__)

INTERVIEWS_TABLE = "interviews"
FEEDBACK_TABLE = "feedback"
USERS_TABLE = "users"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_supabase() -> Client:
    """서버 쓰기용 supabase client. service role key가 없으면 anon key로 생성한다."""
    key = settings.supabase_service_role_key or settings.supabase_key
    if not settings.supabase_url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in .env")
    return create_client(settings.supabase_url, key)


class SupabaseStore:
    """
    Supabase 테이블 접근 (interviews / feedback / users)
    - 조회/저장만 담당, 캐싱/트랜잭션 없음
    - 모든 호출 실패는 ExternalServiceError로 변환
    """

    def __init__(self, client: Client):
        self.client = client

    def _execute(self, query, op: str):
        try:
            return query.execute()
        except Exception as e:
            logger.warning("[STORE] %s failed: %r", op, e)
            raise ExternalServiceError("supabase", f"{op} failed: {e}") from e

    # --interviews table--

    # 면접 조회 (ID로)
    def get_interview_by_id(self, interview_id: str) -> Optional[Dict]:
        q = self.client.table(INTERVIEWS_TABLE).select("*").eq("id", interview_id)
        response = self._execute(q, "get_interview_by_id")
        return response.data[0] if response.data else None

    # 유저 별 면접 조회 (최신순)
    def get_interviews_by_user_id(self, user_id: str) -> List[Dict]:
        q = (
            self.client.table(INTERVIEWS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
        )
        response = self._execute(q, "get_interviews_by_user_id")
        return response.data if response.data else []

    # 다른 사용자의 완료된 면접 (최신순, limit개)
    def get_latest_interviews(self, user_id: str, limit: int = 20) -> List[Dict]:
        q = (
            self.client.table(INTERVIEWS_TABLE)
            .select("*")
            .eq("finalized", True)
            .neq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
        )
        response = self._execute(q, "get_latest_interviews")
        return response.data if response.data else []

    # 면접 저장
    def create_interview(self, data: Dict[str, Any]) -> Dict:
        row = {"created_at": utc_now_iso(), **data}
        response = self._execute(self.client.table(INTERVIEWS_TABLE).insert(row), "create_interview")
        if not response.data:
            raise ExternalServiceError("supabase", "create_interview returned no data")
        return response.data[0]

    # 면접 수정
    def update_interview(self, interview_id: str, data: Dict[str, Any]) -> Dict:
        q = self.client.table(INTERVIEWS_TABLE).update(data).eq("id", interview_id)
        response = self._execute(q, "update_interview")
        if not response.data:
            raise NotFoundError("interview", interview_id)
        return response.data[0]

    # --feedback table--

    # 면접 id + 유저 id로 가장 최근 피드백 조회
    def get_feedback_by_interview_id(self, interview_id: str, user_id: str) -> Optional[Dict]:
        q = (
            self.client.table(FEEDBACK_TABLE)
            .select("*")
            .eq("interview_id", interview_id)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(1)
        )
        response = self._execute(q, "get_feedback_by_interview_id")
        return response.data[0] if response.data else None

    # 피드백 조회 (ID로)
    def get_feedback_by_id(self, feedback_id: str) -> Optional[Dict]:
        q = self.client.table(FEEDBACK_TABLE).select("*").eq("id", feedback_id)
        response = self._execute(q, "get_feedback_by_id")
        return response.data[0] if response.data else None

    # 피드백 저장
    def create_feedback(self, data: Dict[str, Any]) -> Dict:
        row = {"created_at": utc_now_iso(), **data}
        response = self._execute(self.client.table(FEEDBACK_TABLE).insert(row), "create_feedback")
        if not response.data:
            raise ExternalServiceError("supabase", "create_feedback returned no data")
        return response.data[0]

    # 기존 피드백 덮어쓰기 (id 지정)
    def overwrite_feedback(self, feedback_id: str, data: Dict[str, Any]) -> Dict:
        row = {"created_at": utc_now_iso(), **data, "id": feedback_id}
        response = self._execute(self.client.table(FEEDBACK_TABLE).upsert(row), "overwrite_feedback")
        if not response.data:
            raise ExternalServiceError("supabase", "overwrite_feedback returned no data")
        return response.data[0]

    # --users table--

    def get_user(self, user_id: str) -> Optional[Dict]:
        q = self.client.table(USERS_TABLE).select("*").eq("id", user_id)
        response = self._execute(q, "get_user")
        return response.data[0] if response.data else None

    def create_user(self, data: Dict[str, Any]) -> Dict:
        response = self._execute(self.client.table(USERS_TABLE).insert(data), "create_user")
        if not response.data:
            raise ExternalServiceError("supabase", "create_user returned no data")
        return response.data[0]
