# app/services/supa_auth.py
# 인증 관련 로직
# - 계정 생성/비밀번호 확인은 Supabase Auth에 위임
# - 로그인 성공 시 서버 세션 토큰(HS256 JWT)을 발급, HTTP-only 쿠키로 저장
from datetime import datetime, timedelta, timezone
from typing import Dict
import logging

from jose import JWTError, jwt
from supabase import Client

from app.errors import ExternalServiceError
from app.services.supabase_client import SupabaseStore

logger = logging.getLogger(__name__)

SESSION_ALGORITHM = "HS256"


class AuthService:
    def __init__(self, client: Client, store: SupabaseStore, secret: str, max_age_sec: int):
        if not secret:
            raise RuntimeError("SESSION_SECRET 환경변수가 설정되어 있지 않습니다.")
        self.client = client
        self.store = store
        self.secret = secret
        self.max_age_sec = max_age_sec

    # ---------- Account ----------

    def sign_up(self, name: str, email: str, password: str) -> Dict:
        try:
            res = self.client.auth.sign_up({"email": email, "password": password})
        except Exception as e:
            raise ExternalServiceError("supabase-auth", f"sign up failed: {e}") from e

        if res.user is None:
            raise ExternalServiceError("supabase-auth", "sign up returned no user")

        user_id = str(res.user.id)
        if self.store.get_user(user_id):
            raise ValueError("user_already_exists")

        user = self.store.create_user({"id": user_id, "name": name, "email": email})
        logger.info("[AUTH] sign_up user_id=%s", user_id)
        return user

    def sign_in(self, email: str, password: str) -> str:
        """비밀번호 확인 후 세션 토큰 반환"""
        try:
            res = self.client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            raise ExternalServiceError("supabase-auth", f"sign in failed: {e}") from e

        if res.user is None:
            raise ExternalServiceError("supabase-auth", "sign in returned no user")

        user_id = str(res.user.id)
        if not self.store.get_user(user_id):
            raise ValueError("user_not_found")

        logger.info("[AUTH] sign_in user_id=%s", user_id)
        return self.issue_session(user_id, email)

    # ---------- Session token ----------

    def issue_session(self, user_id: str, email: str | None) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "type": "session",
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.max_age_sec)).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=SESSION_ALGORITHM)

    def verify_session(self, token: str | None) -> Dict[str, str | None]:
        if not token:
            raise ValueError("missing session cookie")

        try:
            claims = jwt.decode(token, self.secret, algorithms=[SESSION_ALGORITHM])
        except JWTError as e:
            # get_current_user 쪽에서 401로 바꿔서 응답
            raise ValueError("invalid session") from e

        if claims.get("type") != "session" or not claims.get("sub"):
            raise ValueError("invalid session")

        return {
            "user_id": claims["sub"],
            "email": claims.get("email"),
        }
