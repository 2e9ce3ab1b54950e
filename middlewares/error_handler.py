import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from schemas.common import ErrorDetail, ErrorResponse
from utils.exceptions import GradebookError, PartialFailureError, RecordValidationError

logger = logging.getLogger(__name__)


def _error_body(detail: ErrorDetail) -> dict:
    return ErrorResponse(error=detail).model_dump(mode="json", exclude_none=True)


def add_error_handlers(app: FastAPI):
    @app.exception_handler(GradebookError)
    async def gradebook_exception_handler(request: Request, exc: GradebookError):
        detail = ErrorDetail(code=exc.code, message=str(exc))
        if isinstance(exc, RecordValidationError):
            detail.field = exc.field
        if isinstance(exc, PartialFailureError):
            # 호출자가 어떤 대상이 반영됐는지 확인할 수 있도록 목록 포함
            detail.applied = exc.applied
            detail.failed = exc.failed
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} → {exc.code}: {exc}")
        return JSONResponse(status_code=exc.status_code, content=_error_body(detail))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"처리되지 않은 예외: {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content=_error_body(ErrorDetail(code="INTERNAL_ERROR", message=str(exc))),
        )
