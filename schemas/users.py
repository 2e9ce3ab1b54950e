from pydantic import BaseModel, Field, field_validator

from schemas.records import Role
from services.validation import is_valid_authority

# ✅ 입력용 (POST)
class UserCreate(BaseModel):
    authority: str                           # 지갑/계정 주소
    username: str = Field(min_length=1, max_length=100)  # 표시 이름
    role: Role                               # Teacher / Student / Admin

    @field_validator("authority")
    @classmethod
    def _check_authority(cls, v: str) -> str:
        if not is_valid_authority(v):
            raise ValueError("authority is not a valid account address")
        return v

    @field_validator("username")
    @classmethod
    def _strip_username(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("username is required")
        return v.strip()
