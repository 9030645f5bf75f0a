from typing import Annotated, Optional
from fastapi import Header, HTTPException, status

from app.schemas.context import UserContext


class AuthService:
    """L'identità arriva già verificata dal gateway, negli header X-User-*."""

    @staticmethod
    async def get_current_user(
        x_user_id: Annotated[Optional[str], Header()] = None,
        x_user_role: Annotated[Optional[str], Header()] = None,
    ) -> UserContext:
        if not x_user_id or not x_user_role:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing caller identity",
            )
        roles = [r.strip() for r in x_user_role.split(",") if r.strip()]
        role = roles[0] if len(roles) == 1 else roles
        return UserContext(user_id=x_user_id.strip(), role=role)
