# app/main.py

# ------------------------
# 환경 변수 로드
# ------------------------
from dotenv import load_dotenv
load_dotenv()

import logging

# ------------------------
# FastAPI, CORS 미들웨어 import
# ------------------------
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.errors import ExternalServiceError, NotFoundError

# ------------------------
# 라우터 import
# ------------------------
from app.routers import auth as auth_router
from app.routers import interviews as interviews_router
from app.routers import sessions_voice as sessions_router
from app.routers import vapi as vapi_router

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

# ------------------------
# 1) FastAPI 앱 생성
# ------------------------
app = FastAPI(title="PrepWise API")

# ------------------------
# 2) CORS 미들웨어 추가
#    - 세션 쿠키를 쓰므로 allow_credentials=True
#    - 실제 운영 시 도메인 제한 필요
# ------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------
# 3) 공통 예외 -> HTTP 응답
# ------------------------
@app.exception_handler(ExternalServiceError)
async def external_service_error_handler(request: Request, exc: ExternalServiceError):
    logger.error("[API] external_service_error path=%s service=%s error=%s", request.url.path, exc.service, exc.message)
    return JSONResponse(
        status_code=502,
        content={"detail": {"message": "external_service_error", "detail": exc.message}},
    )


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    return JSONResponse(
        status_code=404,
        content={"detail": {"message": f"{exc.resource}_not_found", "detail": exc.resource_id}},
    )


# ------------------------
# 4) 라우터 등록
# ------------------------
app.include_router(auth_router.router)
app.include_router(interviews_router.router)
app.include_router(sessions_router.router)
app.include_router(vapi_router.router)


# ------------------------
# 5) Root 엔드포인트 (health check)
# ------------------------
@app.get("/")
def root():
    return {"ok": True}
