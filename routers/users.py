import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config.settings import settings
from database.db import get_db
from dependencies.gradebook import get_source, get_store
from dependencies.security import require_role
from schemas.common import make_meta, ok
from schemas.records import Role
from schemas.users import UserCreate
from services import aggregation
from services.cascade import cascade_delete_user
from services.data_source import FALLBACK_NOTICE, GradebookSource
from services.record_store import RecordStore
from utils.exceptions import NotAvailableError, RecordNotFoundError, RegistrationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


# ==========================================================
# [조회] 사용자 검색 / 단건
# ==========================================================

# ✅ 이름/계정 검색 + 역할/활성 필터 (관리자)
@router.get("")
def list_users(
    q: str = Query("", description="username 또는 authority 부분 일치"),
    role: Optional[Role] = None,
    active: Optional[bool] = None,
    source: GradebookSource = Depends(get_source),
    _admin: dict = Depends(require_role("Admin")),
):
    collections = source.load_collections()
    users = aggregation.search_users(collections["users"], q, role, active)
    return ok(users, meta=make_meta(collections["source"], collections["notice"], len(users)))


# ✅ 단건 조회 (등록 여부 확인용, 인증 불필요)
@router.get("/{authority}")
def get_user(authority: str, store: RecordStore = Depends(get_store)):
    user = store.get_user(authority)
    if user is None:
        raise RecordNotFoundError("User", authority)
    return ok(user)


# ==========================================================
# [등록] 원장이 살아 있으면 원장에도 기록
# ==========================================================
@router.post("", status_code=201)
def register_user(
    payload: UserCreate,
    store: RecordStore = Depends(get_store),
    source: GradebookSource = Depends(get_source),
):
    # 원장 호출 전에 로컬 중복 확인
    if store.get_user(payload.authority):
        raise RegistrationError(f"User already registered with account {payload.authority}")

    notice = None
    signature = None
    if source.use_ledger():
        try:
            signature = source.adapter.register_user(payload.username, payload.role, payload.authority)
        except NotAvailableError as e:
            logger.warning(f"원장 등록 실패, 로컬에만 등록: {e}")
            notice = FALLBACK_NOTICE
    elif source.adapter is not None:
        notice = FALLBACK_NOTICE

    user = store.register_user(payload.authority, payload.username, payload.role)
    data = {**user, "signature": signature}
    source_name = "ledger" if signature else "local"
    return ok(data, message="User registered", meta=make_meta(source_name, notice))


# ==========================================================
# [삭제] 관리자 전용, 연관 레코드까지 함께 삭제
# ==========================================================
@router.delete("/{authority}")
def delete_user(
    authority: str,
    db: Session = Depends(get_db),
    _admin: dict = Depends(require_role("Admin")),
):
    report = cascade_delete_user(db, authority, settings.ORPHAN_CLASSROOM_POLICY)
    return ok(report.as_dict(), message="User deleted")
