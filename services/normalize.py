"""저장소 경계 정규화.

로컬 저장 덤프나 원장에서 읽어온 스키마 없는 레코드를 schemas/records.py 의
버전 스키마로 검증하고, 통과하지 못한 항목은 격리(quarantine)합니다.
이 모듈의 함수는 예외를 밖으로 던지지 않습니다.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from schemas.records import ClassroomRecord, GradeRecord, UserRecord

logger = logging.getLogger(__name__)

COLLECTIONS = ("users", "classrooms", "grades")


def _normalize(record_type: Type[BaseModel], raw: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, dict):
        return None
    try:
        return record_type.model_validate(raw).model_dump()
    except ValidationError as e:
        logger.debug(f"{record_type.__name__} 검증 실패: {e.error_count()}개 오류")
        return None


def normalize_user(raw: Any) -> Optional[Dict[str, Any]]:
    return _normalize(UserRecord, raw)


def normalize_classroom(raw: Any) -> Optional[Dict[str, Any]]:
    return _normalize(ClassroomRecord, raw)


def normalize_grade(raw: Any) -> Optional[Dict[str, Any]]:
    return _normalize(GradeRecord, raw)


# 컬렉션 이름 → (정규화 함수, 키 필드)
_NORMALIZERS: Dict[str, Tuple[Callable[[Any], Optional[Dict[str, Any]]], str]] = {
    "users": (normalize_user, "authority"),
    "classrooms": (normalize_classroom, "classroom_id"),
    "grades": (normalize_grade, "grade_id"),
}


def normalize_collection(name: str, raws: Iterable[Any]) -> Tuple[List[Dict[str, Any]], List[Any]]:
    """컬렉션 전체 정규화 → (정상 레코드 목록, 격리된 원본 목록)

    - 알 수 없는 컬렉션 이름이면 빈 결과
    - 같은 키(authority/classroom_id/grade_id) 가 반복되면 처음 것만 유지
    """
    if name not in _NORMALIZERS or raws is None:
        return [], []

    normalize, key_field = _NORMALIZERS[name]
    records, quarantined, seen = [], [], set()
    for raw in raws:
        record = normalize(raw)
        if record is None or record[key_field] in seen:
            quarantined.append(raw)
            continue
        seen.add(record[key_field])
        records.append(record)

    if quarantined:
        logger.warning(f"[{name}] 스키마 불일치 레코드 {len(quarantined)}건 격리")
    return records, quarantined
