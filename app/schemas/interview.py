from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal

# 피드백 카테고리 (순서 고정)
FEEDBACK_CATEGORIES = (
    "Communication Skills",
    "Technical Knowledge",
    "Problem Solving",
    "Cultural Fit",
    "Confidence and Clarity",
)

SessionMode = Literal["generate-questions", "conduct-interview"]

# 음성 서비스의 화자 이름 -> 트랜스크립트 화자
VOICE_ROLE_MAP = {
    "user": "candidate",
    "assistant": "interviewer",
}


# -- Request --

# 질문 생성 - 요청 (음성 워크플로우가 호출)
class GenerateQuestionsRequest(BaseModel):
    type: str = Field(..., min_length=1, description="면접 유형 (technical / behavioural / mixed)")
    role: str = Field(..., min_length=1, description="직무명")
    level: str = Field(..., min_length=1, description="경력 수준")
    techstack: str = Field("", description="기술 스택 (쉼표 구분)")
    amount: int = Field(..., ge=1, le=50, description="질문 개수")
    userid: str = Field(..., min_length=1, description="요청 사용자 id")


# 트랜스크립트 한 줄
class TranscriptEntry(BaseModel):
    role: Literal["candidate", "interviewer"]
    content: str

    @classmethod
    def from_voice(cls, voice_role: str, text: str) -> "TranscriptEntry":
        role = VOICE_ROLE_MAP.get(voice_role)
        if role is None:
            raise ValueError(f"unknown speaker: {voice_role}")
        return cls(role=role, content=text)


# 피드백 생성 - 요청
class CreateFeedbackRequest(BaseModel):
    transcript: List[TranscriptEntry] = Field(..., min_length=1, description="면접 트랜스크립트")
    feedback_id: Optional[str] = Field(None, description="덮어쓸 기존 피드백 id")


# 음성 세션 시작 - 요청
class StartSessionRequest(BaseModel):
    mode: SessionMode
    interview_id: Optional[str] = None
    feedback_id: Optional[str] = None


# -- LLM output schema --

class CategoryScore(BaseModel):
    name: str
    score: int = Field(..., ge=0, le=100)
    comment: str


class FeedbackRecord(BaseModel):
    """피드백 생성 결과. LLM 응답은 반드시 이 형태를 통과해야 저장된다."""

    total_score: int = Field(..., ge=0, le=100)
    category_scores: List[CategoryScore]
    strengths: List[str]
    areas_for_improvement: List[str]
    final_assessment: str

    @field_validator("category_scores")
    @classmethod
    def validate_categories(cls, v: List[CategoryScore]) -> List[CategoryScore]:
        names = tuple(c.name for c in v)
        if names != FEEDBACK_CATEGORIES:
            raise ValueError(f"category_scores must be exactly {list(FEEDBACK_CATEGORIES)}, got {list(names)}")
        return v


# -- Response --

class ActionResult(BaseModel):
    success: bool
    message: Optional[str] = None
    feedback_id: Optional[str] = None


class InterviewResponse(BaseModel):
    id: str
    role: str
    level: str
    type: str
    techstack: List[str]
    questions: List[str]
    user_id: str
    finalized: bool
    cover_image: Optional[str] = None
    created_at: str


class FeedbackResponse(FeedbackRecord):
    id: str
    interview_id: str
    user_id: str
    created_at: str


class SessionStateResponse(BaseModel):
    call_id: str
    mode: SessionMode
    state: str
    is_speaking: bool
    transcript: List[TranscriptEntry]
    error: Optional[str] = None
    feedback: Optional[ActionResult] = None
