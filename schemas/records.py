"""
schemas/records.py

- 저장소 경계(Record Store / Remote Ledger) 를 넘나드는 레코드의 버전 스키마
- 로컬 저장 덤프(camelCase) 와 내부 표현(snake_case) 을 모두 받아들임
- percentage 필드는 받더라도 버림 (항상 grade/max_grade 로 재계산)
"""

import hashlib
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

CURRENT_SCHEMA_VERSION = 1

Role = Literal["Teacher", "Student", "Admin"]
ROLES = ("Teacher", "Student", "Admin")


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    schema_version: int = Field(
        default=CURRENT_SCHEMA_VERSION,
        validation_alias=AliasChoices("schema_version", "schemaVersion"),
    )

    @field_validator("schema_version")
    @classmethod
    def _known_version(cls, v: int) -> int:
        if v < 1 or v > CURRENT_SCHEMA_VERSION:
            raise ValueError(f"unsupported schema version {v}")
        return v


# ✅ 사용자 레코드
class UserRecord(_Record):
    authority: str = Field(min_length=1)
    username: str = Field(min_length=1)
    role: Role
    created_at: int = Field(default=0, ge=0, validation_alias=AliasChoices("created_at", "createdAt"))
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "isActive"))

    @field_validator("role", mode="before")
    @classmethod
    def _capitalize_role(cls, v):
        # 원장에서는 {"teacher": {}} 형태, 로컬 덤프에서는 "teacher"/"Teacher"
        if isinstance(v, dict) and len(v) == 1:
            v = next(iter(v))
        if isinstance(v, str):
            return v.strip().capitalize()
        return v


# ✅ 학급 레코드
class StudentRef(BaseModel):
    pubkey: str = Field(min_length=1)


class ClassroomRecord(_Record):
    classroom_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("classroom_id", "classroomId", "id"))
    name: str = Field(min_length=1)
    course: str = ""
    teacher: Optional[str] = None
    students: List[StudentRef] = Field(default_factory=list)
    created_at: int = Field(default=0, ge=0, validation_alias=AliasChoices("created_at", "createdAt"))
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "isActive"))

    @field_validator("students", mode="before")
    @classmethod
    def _coerce_students(cls, v):
        if v is None:
            return []
        # 문자열 목록도 {"pubkey": ...} 형태로 정규화
        return [{"pubkey": s} if isinstance(s, str) else s for s in v]

    @model_validator(mode="after")
    def _derive_id(self):
        if not self.classroom_id:
            # 원장 학급에는 별도 ID 가 없으므로 내용 기반으로 고정 ID 생성
            seed = f"{self.teacher}|{self.name}|{self.course}|{self.created_at}"
            self.classroom_id = hashlib.sha1(seed.encode("utf-8")).hexdigest()[:16]
        return self


# ✅ 성적 레코드
class GradeRecord(_Record):
    grade_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("grade_id", "gradeId", "id"))
    student_wallet: str = Field(min_length=1, validation_alias=AliasChoices("student_wallet", "studentWallet", "student"))
    teacher_wallet: str = Field(
        min_length=1,
        validation_alias=AliasChoices("teacher_wallet", "teacherWallet", "graded_by", "gradedBy", "teacher"),
    )
    assignment_name: str = Field(min_length=1, validation_alias=AliasChoices("assignment_name", "assignmentName"))
    grade: int = Field(ge=0)
    max_grade: int = Field(gt=0, validation_alias=AliasChoices("max_grade", "maxGrade"))
    timestamp: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _grade_within_max(self):
        if self.grade > self.max_grade:
            raise ValueError("grade must not exceed max_grade")
        if not self.grade_id:
            # 원장 ID 규칙: 학생_과제_시각
            self.grade_id = f"{self.student_wallet}_{self.assignment_name}_{self.timestamp}"
        return self
