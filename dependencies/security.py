from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException

from dependencies.gradebook import get_store
from services.record_store import RecordStore
from utils.exceptions import PermissionDeniedError

AuthorityHeader = Annotated[Optional[str], Header(alias="X-Authority")]


def get_current_user(
    x_authority: AuthorityHeader = None,
    store: RecordStore = Depends(get_store),
) -> dict:
    """X-Authority 헤더의 계정으로 사용자 조회"""
    if not x_authority:
        raise HTTPException(
            status_code=401,
            detail="Missing X-Authority header",
        )

    user = store.get_user(x_authority.strip())
    if user is None:
        raise PermissionDeniedError("Account is not registered")
    if not user["is_active"]:
        raise PermissionDeniedError("Account is inactive")
    return user


def require_role(*roles: str):
    """역할 검사 의존성 팩토리. Admin 은 모든 역할 검사를 통과"""

    def _checker(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] != "Admin" and user["role"] not in roles:
            raise PermissionDeniedError(f"Requires role: {', '.join(roles)}")
        return user

    return _checker
