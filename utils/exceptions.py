"""성적 대시보드 도메인 예외 모음.

라우터에서는 이 예외들을 그대로 raise 하고,
middlewares/error_handler.py 가 HTTP 상태코드와 표준 에러 응답으로 변환합니다.
"""

from typing import List, Optional


class GradebookError(Exception):
    """모든 도메인 예외의 베이스"""

    code = "GRADEBOOK_ERROR"
    status_code = 500


class NotAvailableError(GradebookError):
    """원격 원장(ledger) 에 접근할 수 없거나 헬스체크 실패"""

    code = "LEDGER_NOT_AVAILABLE"
    status_code = 503


class RecordValidationError(GradebookError):
    """쓰기 요청 입력값 검증 실패 (쓰기 전에 거부됨)"""

    code = "VALIDATION_ERROR"
    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class RecordNotFoundError(GradebookError):
    """참조한 User/Classroom/Grade 가 없음"""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} '{key}' not found")


class RegistrationError(GradebookError):
    """이미 등록된 계정으로 다시 등록을 시도함"""

    code = "ALREADY_REGISTERED"
    status_code = 409


class PermissionDeniedError(GradebookError):
    """호출자의 역할로는 수행할 수 없는 작업"""

    code = "PERMISSION_DENIED"
    status_code = 403


class PartialFailureError(GradebookError):
    """여러 컬렉션/레코드 쓰기 중 일부만 반영되었거나 전부 롤백됨.

    applied: 실제로 반영된 대상 목록
    failed: 반영되지 않은 대상 목록
    """

    code = "PARTIAL_FAILURE"
    status_code = 500

    def __init__(self, message: str, applied: List[str], failed: List[str]):
        super().__init__(message)
        self.applied = list(applied)
        self.failed = list(failed)
