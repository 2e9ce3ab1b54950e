from pydantic import BaseModel, Field, field_validator

from services.validation import is_valid_authority

# ✅ 생성(Create) 요청용 스키마
# 담당 교사는 요청자(X-Authority) 로 정해지므로 바디에서 받지 않음
class ClassroomCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)     # 학급 이름
    course: str = Field(min_length=1, max_length=100)   # 과목/코스명


# ✅ 수강생 추가 요청용 스키마
class StudentEnroll(BaseModel):
    pubkey: str                                          # 학생 authority

    @field_validator("pubkey")
    @classmethod
    def _check_pubkey(cls, v: str) -> str:
        if not is_valid_authority(v):
            raise ValueError("pubkey is not a valid account address")
        return v
