from pydantic import BaseModel, Field, field_validator, model_validator

from services.validation import is_valid_authority

# ✅ 성적 부여 요청 (채점 교사는 요청자 X-Authority)
# percentage 는 입력받지 않음 → 조회 시 grade/max_grade 로 계산
class GradeCreate(BaseModel):
    student_wallet: str                                  # 학생 authority
    assignment_name: str = Field(min_length=1, max_length=150)  # 과제명
    grade: int = Field(ge=0)                             # 획득 점수
    max_grade: int = Field(default=100, gt=0)            # 만점

    @field_validator("student_wallet")
    @classmethod
    def _check_student(cls, v: str) -> str:
        if not is_valid_authority(v):
            raise ValueError("student_wallet is not a valid account address")
        return v

    @model_validator(mode="after")
    def _grade_within_max(self):
        if self.grade > self.max_grade:
            raise ValueError("grade cannot exceed max_grade")
        return self
