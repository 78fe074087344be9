# app/errors.py
# 서비스 계층 공통 예외
# - ExternalServiceError: OpenAI / Supabase / Vapi 호출 실패 (스키마 검증 실패 포함)
# - NotFoundError: 요청한 id에 해당하는 레코드 없음
# 입력 형식 오류는 pydantic ValidationError(FastAPI 422)로 처리한다.


class ExternalServiceError(Exception):
    """외부 서비스 호출 실패"""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.message = message


class NotFoundError(Exception):
    """id로 조회한 레코드가 없음"""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} not found: {resource_id}")
        self.resource = resource
        self.resource_id = resource_id
