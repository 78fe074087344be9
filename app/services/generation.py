"""
면접 질문 / 피드백 생성 Service (OpenAI API)
"""
import re
import json
import logging
from typing import List, Dict, Any

from openai import OpenAI
from pydantic import ValidationError

from app.config import settings
from app.errors import ExternalServiceError
from app.schemas.interview import FEEDBACK_CATEGORIES, FeedbackRecord

logger = logging.getLogger(__name__)


FEEDBACK_SYSTEM_PROMPT = """
You are a professional interviewer analyzing a mock interview.
Your task is to evaluate the candidate based on structured categories.
Respond with a single JSON object only, no other text.
"""


def build_questions_prompt(role: str, level: str, techstack: str, type: str, amount: int) -> str:
    return f"""
Prepare questions for a job interview.
The job role is {role}.
The job experience level is {level}.
The tech stack used in the job is: {techstack}.
The focus between behavioural and technical questions should lean towards: {type}.
The amount of questions required is: {amount}.
Please return only the questions, without any additional text.
The questions are going to be read by a voice assistant so do not use "/" or "*" or any other special characters which might break the voice assistant.
Return a JSON object formatted like this:
{{"questions": ["Question 1", "Question 2", "Question 3"]}}
"""


def build_feedback_prompt(formatted_transcript: str) -> str:
    categories = "\n".join(f"- **{name}**" for name in FEEDBACK_CATEGORIES)
    return f"""
You are an AI interviewer analyzing a mock interview. Your task is to evaluate the candidate based on structured categories. Be thorough and detailed in your analysis. Don't be lenient with the candidate. If there are mistakes or areas for improvement, point them out.
Transcript:
{formatted_transcript}

Please score the candidate from 0 to 100 in the following areas, in this exact order. Do not add categories other than the ones provided:
{categories}

Return a JSON object with this shape:
{{
  "total_score": 0,
  "category_scores": [{{"name": "Communication Skills", "score": 0, "comment": ""}}],
  "strengths": [""],
  "areas_for_improvement": [""],
  "final_assessment": ""
}}
"""


def _parse_json(content: str) -> Dict[str, Any]:
    # JSON 파싱 (LLM이 JSON만 주도록 규칙을 넣었지만 안전 처리)
    try:
        return json.loads(content)
    except (TypeError, ValueError):
        # JSON 블록만 추출 시도
        match = re.search(r"\{[\s\S]*\}", content or "")
        if not match:
            raise ExternalServiceError("openai", "no JSON object in model response")
        try:
            return json.loads(match.group(0))
        except ValueError as e:
            raise ExternalServiceError("openai", f"invalid JSON in model response: {e}") from e


class TextGenerationService:
    """OpenAI chat completion 래퍼. 한 번만 호출하고 재시도하지 않는다."""

    def __init__(self, client: OpenAI, model: str = "gpt-4o-mini"):
        self.client = client
        self.model = model

    def _complete_json(self, messages: List[Dict[str, str]], temperature: float) -> Dict[str, Any]:
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                response_format={"type": "json_object"},
                temperature=temperature,
                messages=messages,
            )
        except Exception as e:
            raise ExternalServiceError("openai", str(e)) from e

        content = resp.choices[0].message.content
        data = _parse_json(content)
        if not isinstance(data, dict):
            raise ExternalServiceError("openai", f"expected a JSON object, got {type(data).__name__}")
        return data

    def generate_questions(self, role: str, level: str, techstack: str, type: str, amount: int) -> List[str]:
        prompt = build_questions_prompt(role, level, techstack, type, amount)
        data = self._complete_json([{"role": "user", "content": prompt}], temperature=0.3)

        questions = data.get("questions")
        if not isinstance(questions, list) or not all(isinstance(q, str) for q in questions):
            raise ExternalServiceError("openai", "questions must be a list of strings")

        questions = [q.strip() for q in questions if q.strip()]
        if not questions:
            raise ExternalServiceError("openai", "model returned no questions")

        logger.info("[GENERATION] questions role=%s requested=%s returned=%s", role, amount, len(questions))
        return questions[:amount]

    def generate_feedback(self, formatted_transcript: str) -> FeedbackRecord:
        data = self._complete_json(
            [
                {"role": "system", "content": FEEDBACK_SYSTEM_PROMPT},
                {"role": "user", "content": build_feedback_prompt(formatted_transcript)},
            ],
            temperature=0.2,
        )
        try:
            return FeedbackRecord.model_validate(data)
        except ValidationError as e:
            raise ExternalServiceError("openai", f"feedback schema validation failed: {e}") from e


def create_generation_service() -> TextGenerationService:
    return TextGenerationService(OpenAI(api_key=settings.openai_api_key), model=settings.openai_model)
