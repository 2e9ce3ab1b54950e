"""쓰기 요청 검증. 실패하면 RecordValidationError 를 던지고 아무것도 쓰지 않음"""

import re

from schemas.records import ROLES
from utils.exceptions import RecordValidationError

# 원장 계정 주소: base58, 32~44자
AUTHORITY_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def is_valid_authority(value) -> bool:
    return isinstance(value, str) and bool(AUTHORITY_PATTERN.match(value))


def validate_authority(value, field: str = "authority") -> str:
    if not is_valid_authority(value):
        raise RecordValidationError(f"{field} is not a valid account address", field=field)
    return value


def validate_required(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise RecordValidationError(f"{field} is required", field=field)
    return value.strip()


def validate_role(role) -> str:
    if role not in ROLES:
        raise RecordValidationError(f"role must be one of {', '.join(ROLES)}", field="role")
    return role


def validate_score(grade, max_grade) -> tuple:
    """grade/max_grade 검증: 정수, 0 <= grade <= max_grade, max_grade > 0"""
    if isinstance(grade, bool) or not isinstance(grade, int):
        raise RecordValidationError("grade must be an integer", field="grade")
    if isinstance(max_grade, bool) or not isinstance(max_grade, int):
        raise RecordValidationError("max_grade must be an integer", field="max_grade")
    if max_grade <= 0:
        raise RecordValidationError("max_grade must be greater than 0", field="max_grade")
    if grade < 0:
        raise RecordValidationError("grade must not be negative", field="grade")
    if grade > max_grade:
        raise RecordValidationError("grade cannot exceed max_grade", field="grade")
    return grade, max_grade
