# app/routers/auth.py
from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, EmailStr, constr

from app.config import settings
from app.deps import get_auth_service, get_current_user
from app.errors import ExternalServiceError
from app.services.supa_auth import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


# ---------- Schemas ----------
class SignUpIn(BaseModel):
    name: constr(min_length=1)
    email: EmailStr
    password: constr(min_length=6)


class SignInIn(BaseModel):
    email: EmailStr
    password: str


class MeOut(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None


# ---------- Endpoints ----------
@router.post("/sign-up", status_code=201)
def sign_up(body: SignUpIn, auth: AuthService = Depends(get_auth_service)):
    """
    회원가입
    - 계정 생성은 Supabase Auth
    - users 테이블에 이름/이메일 저장
    """
    try:
        user = auth.sign_up(body.name, body.email, body.password)
    except ValueError as e:
        raise HTTPException(status_code=409, detail={"message": str(e), "detail": "Please sign in instead"})
    except ExternalServiceError as e:
        raise HTTPException(status_code=400, detail={"message": "sign_up_failed", "detail": e.message})

    return {"success": True, "message": "Account created successfully. Please sign in.", "id": user["id"]}


@router.post("/sign-in")
def sign_in(body: SignInIn, response: Response, auth: AuthService = Depends(get_auth_service)):
    """로그인 성공 시 세션 쿠키(HTTP-only, 1주일) 발급"""
    try:
        token = auth.sign_in(body.email, body.password)
    except ValueError as e:
        raise HTTPException(status_code=404, detail={"message": str(e), "detail": "Create an account instead"})
    except ExternalServiceError as e:
        raise HTTPException(status_code=401, detail={"message": "sign_in_failed", "detail": e.message})

    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
    )
    return {"success": True, "message": "Signed in successfully."}


@router.post("/sign-out", status_code=204)
def sign_out(response: Response):
    """서버 세션 저장소는 없음. 쿠키만 삭제."""
    response.delete_cookie(key=settings.session_cookie_name, path="/")


@router.get("/me", response_model=MeOut)
def me(user=Depends(get_current_user)):
    return MeOut(id=user["id"], email=user["email"], name=user["name"])
