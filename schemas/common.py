"""
schemas/common.py

- 프로젝트 전반에서 재사용할 공용 스키마 모음
- Pydantic v2 기준
- 포함 내용:
  1) 에러 응답 표준: ErrorDetail, ErrorResponse
  2) 목록 메타: MetaInfo, make_meta()
  3) 성공 응답 dict: ok()
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ConfigDict


# =========================================================
# 1) 에러 응답 표준
# =========================================================

class ErrorDetail(BaseModel):
    """에러 코드/메시지를 담는 최소 단위"""
    code: str = Field(..., description="에러 식별 코드 (예: NOT_FOUND, LEDGER_NOT_AVAILABLE)")
    message: str = Field(..., description="사람이 읽을 수 있는 에러 메시지")
    field: Optional[str] = Field(default=None, description="검증 실패한 입력 필드")
    applied: Optional[List[str]] = Field(default=None, description="부분 실패 시 반영된 대상")
    failed: Optional[List[str]] = Field(default=None, description="부분 실패 시 반영되지 않은 대상")

    model_config = ConfigDict(extra="ignore")


class ErrorResponse(BaseModel):
    """
    전역 에러 핸들러에서 내려주는 표준 에러 응답
    - middlewares/error_handler.py 에서 이 스키마로 직렬화
    """
    error: ErrorDetail
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="응답 생성 시각 (UTC)"
    )
    latency_ms: Optional[int] = Field(
        default=None, ge=0, description="요청 처리에 걸린 시간(ms)"
    )

    model_config = ConfigDict(extra="ignore")


# =========================================================
# 2) 목록 메타
# =========================================================

class MetaInfo(BaseModel):
    """
    응답에 포함시키는 메타 정보
    - source: 데이터 출처 (local / ledger)
    - notice: 원장 대체 사용 등 치명적이지 않은 안내 문구
    - total: 목록 응답일 때 전체 개수
    """
    source: str = "local"
    notice: Optional[str] = None
    total: Optional[int] = Field(default=None, ge=0)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(extra="ignore")


def make_meta(source: str = "local", notice: Optional[str] = None, total: Optional[int] = None) -> MetaInfo:
    return MetaInfo(source=source, notice=notice, total=total)


# =========================================================
# 3) 성공 응답
# =========================================================

def ok(data: Any, message: Optional[str] = None, meta: Optional[MetaInfo] = None) -> dict:
    """라우터에서 바로 반환하는 dict 형태의 성공 응답"""
    body = {"success": True, "data": data}
    if meta is not None:
        body["meta"] = meta.model_dump(mode="json")
    if message:
        body["message"] = message
    return body
