"""로컬 레코드 가져오기(import) / 원장으로 옮기기(migrate)"""

import logging
from typing import Any, Dict, Tuple

from services.ledger_client import LedgerAdapter
from services.normalize import COLLECTIONS
from services.record_store import RecordStore
from utils.exceptions import (
    NotAvailableError, PartialFailureError, RecordValidationError, RegistrationError,
)

logger = logging.getLogger(__name__)


def import_dump(store: RecordStore, dump: Any) -> Dict[str, Dict[str, int]]:
    """JSON 내보내기 덤프를 Record Store 에 적재 (컬렉션 전체 교체, 한 트랜잭션)

    덤프에 없는 컬렉션은 건드리지 않습니다.
    """
    if not isinstance(dump, dict):
        raise RecordValidationError("import payload must be a JSON object")
    payload = {name: dump[name] for name in COLLECTIONS if isinstance(dump.get(name), list)}
    if not payload:
        raise RecordValidationError("import payload has no users/classrooms/grades lists")
    return store.replace_collections(payload)


def _classroom_key(c: Dict[str, Any]) -> Tuple:
    return (c.get("teacher"), c.get("name"), c.get("course"))


def _grade_key(g: Dict[str, Any]) -> Tuple:
    # 원장 타임스탬프는 제출 시각이라 로컬과 다르므로 비교에서 제외
    return (g.get("student_wallet"), g.get("teacher_wallet"), g.get("assignment_name"), g.get("grade"), g.get("max_grade"))


def migrate_to_ledger(store: RecordStore, adapter: LedgerAdapter) -> Dict[str, Any]:
    """로컬 레코드를 원장 프로그램으로 전송. 재시도 없음

    - 원장에 이미 있는 레코드는 skipped (부분 실패 후 다시 실행해도 중복 제출 없음)
    - 일부만 성공하면 PartialFailureError(applied, failed)
    - 하나도 성공하지 못하면 NotAvailableError
    """
    if not adapter.health_check():
        raise NotAvailableError("Ledger program not accessible")

    collections = store.collections()
    on_ledger_users = {u["authority"] for u in adapter.fetch_all_users()}
    on_ledger_classrooms = {_classroom_key(c) for c in adapter.fetch_all_classrooms()}
    on_ledger_grades = {_grade_key(g) for g in adapter.fetch_all_grades()}
    applied, failed, skipped = [], [], []

    for user in collections["users"]:
        key = f"users/{user['authority']}"
        if user["authority"] in on_ledger_users:
            skipped.append(key)
            continue
        try:
            adapter.register_user(user["username"], user["role"], user["authority"])
            applied.append(key)
        except RegistrationError:
            skipped.append(key)
        except NotAvailableError as e:
            logger.warning(f"원장 이전 실패 {key}: {e}")
            failed.append(key)

    for classroom in collections["classrooms"]:
        key = f"classrooms/{classroom['classroom_id']}"
        if not classroom.get("teacher") or _classroom_key(classroom) in on_ledger_classrooms:
            skipped.append(key)
            continue
        try:
            adapter.create_classroom(classroom["name"], classroom["course"], classroom["teacher"])
            applied.append(key)
        except NotAvailableError as e:
            logger.warning(f"원장 이전 실패 {key}: {e}")
            failed.append(key)

    for grade in collections["grades"]:
        key = f"grades/{grade['grade_id']}"
        if _grade_key(grade) in on_ledger_grades:
            skipped.append(key)
            continue
        try:
            adapter.add_grade(
                grade["student_wallet"], grade["assignment_name"],
                grade["grade"], grade["max_grade"], grade["teacher_wallet"],
            )
            applied.append(key)
        except NotAvailableError as e:
            logger.warning(f"원장 이전 실패 {key}: {e}")
            failed.append(key)

    if failed and applied:
        raise PartialFailureError(
            f"Migrated {len(applied)} records, {len(failed)} failed", applied=applied, failed=failed
        )
    if failed:
        raise NotAvailableError(f"Migration failed for all {len(failed)} records")

    logger.info(f"원장 이전 완료: 적용 {len(applied)}, 건너뜀 {len(skipped)}")
    return {"applied": applied, "skipped": skipped, "failed": []}
