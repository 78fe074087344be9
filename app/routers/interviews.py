from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from app.config import settings
from app.deps import get_current_user, get_feedback_service, get_store
from app.schemas.interview import (
    CreateFeedbackRequest,
    FeedbackResponse,
    InterviewResponse,
)
from app.services.feedback_service import FeedbackService
from app.services.supabase_client import SupabaseStore

router = APIRouter(prefix="/api/interviews", tags=["interviews"])


# 인터뷰 조회 (없으면 404)
def _get_interview_or_404(store: SupabaseStore, interview_id: str) -> Dict:
    interview = store.get_interview_by_id(interview_id)
    if not interview:
        raise HTTPException(
            status_code=404,
            detail={
                "message": "interview_not_found",
                "detail": "The interview with the specified ID does not exist",
            },
        )
    return interview


# 메인 페이지
# 1) 내 면접 목록
@router.get("", response_model=List[InterviewResponse])
def list_my_interviews(
    store: SupabaseStore = Depends(get_store),
    current=Depends(get_current_user),
):
    return store.get_interviews_by_user_id(current["id"])


# 2) 다른 사용자들의 최근 면접 (기본 20개)
@router.get("/latest", response_model=List[InterviewResponse])
def list_latest_interviews(
    limit: int = Query(settings.latest_interviews_limit, ge=1, le=100),
    store: SupabaseStore = Depends(get_store),
    current=Depends(get_current_user),
):
    return store.get_latest_interviews(current["id"], limit=limit)


# 3) 면접 상세
@router.get("/{interview_id}", response_model=InterviewResponse)
def get_interview(
    interview_id: str,
    store: SupabaseStore = Depends(get_store),
    current=Depends(get_current_user),
):
    return _get_interview_or_404(store, interview_id)


# 피드백 페이지
# 4) 면접 피드백 조회
@router.get("/{interview_id}/feedback", response_model=FeedbackResponse)
def get_feedback(
    interview_id: str,
    store: SupabaseStore = Depends(get_store),
    current=Depends(get_current_user),
):
    feedback = store.get_feedback_by_interview_id(interview_id, current["id"])
    if not feedback:
        raise HTTPException(status_code=404, detail={"message": "feedback_not_found"})
    return feedback


# 5) 트랜스크립트로 피드백 생성/덮어쓰기
@router.post("/{interview_id}/feedback")
def create_feedback(
    interview_id: str,
    body: CreateFeedbackRequest,
    store: SupabaseStore = Depends(get_store),
    svc: FeedbackService = Depends(get_feedback_service),
    current=Depends(get_current_user),
):
    _get_interview_or_404(store, interview_id)

    result = svc.create_feedback(
        interview_id=interview_id,
        user_id=current["id"],
        transcript=body.transcript,
        feedback_id=body.feedback_id,
    )
    if not result["success"]:
        return JSONResponse(
            status_code=502,
            content={"success": False, "message": result.get("message")},
        )
    return result
