import json
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request
from starlette.concurrency import run_in_threadpool

from config.settings import settings
from dependencies.gradebook import get_ledger_health, get_store
from dependencies.security import get_current_user, require_role
from schemas.common import ok
from services.data_source import LedgerHealth
from services.migration import import_dump, migrate_to_ledger
from services.record_store import DEFAULT_SCOPED_KEY, RecordStore
from utils.exceptions import (
    NotAvailableError, PartialFailureError, PermissionDeniedError, RecordValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/storage", tags=["storage"])


def _check_owner(user: dict, authority: str):
    if user["role"] != "Admin" and user["authority"] != authority:
        raise PermissionDeniedError("Cannot access another user's data")


# ==========================================================
# [사용자 데이터] 본인 또는 관리자만
# ==========================================================
@router.get("/{authority}")
def read_user_data(
    authority: str,
    key: str = Query(DEFAULT_SCOPED_KEY),
    store: RecordStore = Depends(get_store),
    user: dict = Depends(get_current_user),
):
    _check_owner(user, authority)
    return ok({
        "authority": authority,
        "key": key,
        "value": store.read_user_scoped(authority, key),
        "keys": store.list_user_scoped_keys(authority),
    })


@router.put("/{authority}")
def write_user_data(
    authority: str,
    value: Any = Body(...),
    key: str = Query(DEFAULT_SCOPED_KEY),
    store: RecordStore = Depends(get_store),
    user: dict = Depends(get_current_user),
):
    _check_owner(user, authority)
    if not store.write_user_scoped(authority, value, key):
        raise PartialFailureError("User data write was rolled back", applied=[], failed=["user_data"])
    return ok({"authority": authority, "key": key}, message="Saved")


@router.delete("/{authority}")
def delete_user_data(
    authority: str,
    store: RecordStore = Depends(get_store),
    user: dict = Depends(get_current_user),
):
    _check_owner(user, authority)
    removed = store.delete_user_scoped(authority)
    return ok({"authority": authority, "removed": removed}, message="Deleted")


# ==========================================================
# [관리] 덤프 가져오기 / 원장 이전
# ==========================================================
async def _read_import_body(request: Request) -> Any:
    """요청 본문을 MAX_IMPORT_MB 까지만 읽어서 JSON 으로 파싱"""
    limit = settings.MAX_IMPORT_MB * 1024 * 1024
    too_large = RecordValidationError(f"import payload exceeds {settings.MAX_IMPORT_MB}MB", field="body")

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise too_large

    chunks, size = [], 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise too_large
        chunks.append(chunk)

    try:
        return json.loads(b"".join(chunks))
    except ValueError as e:
        raise RecordValidationError("import payload is not valid JSON", field="body") from e


@router.post("/import")
async def import_records(
    request: Request,
    store: RecordStore = Depends(get_store),
    _admin: dict = Depends(require_role("Admin")),
):
    dump = await _read_import_body(request)
    summary = await run_in_threadpool(import_dump, store, dump)
    return ok(summary, message="Import complete")


@router.post("/migrate")
def migrate_records(
    store: RecordStore = Depends(get_store),
    health: LedgerHealth = Depends(get_ledger_health),
    _admin: dict = Depends(require_role("Admin")),
):
    if health.adapter is None:
        raise NotAvailableError("Ledger is not configured")
    result = migrate_to_ledger(store, health.adapter)
    return ok(result, message="Migration complete")
