from fastapi import Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from uuid import UUID

from marketplace.core.exceptions import ForbiddenError, UnauthorizedError
from marketplace.core.security import verify_token
from marketplace.db.base import get_db
from marketplace.db.models.user import User as UserModel, UserType

class CurrentUser(BaseModel):
    id: UUID
    email: str
    user_type: UserType

async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> CurrentUser:
    """
    Validate the access token and return the current user.
    Tokens are issued by the accounts service; only ``sub`` is trusted here.
    """
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.lower().startswith("bearer "):
        raise UnauthorizedError()
    token = auth_header.split(" ", 1)[1].strip()
    if len(token.split('.')) != 3:
        raise UnauthorizedError("Invalid token format")

    try:
        payload = verify_token(token)
        user_id = UUID(payload["sub"])
    except (ValueError, KeyError, TypeError) as e:
        raise UnauthorizedError(f"Invalid token: {str(e)}")

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalars().first()
    if user is None:
        raise UnauthorizedError()

    return CurrentUser(id=user.id, email=user.email, user_type=user.user_type)

def require_role(*roles: UserType):
    async def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.user_type not in roles:
            raise ForbiddenError("Insufficient permissions")
        return current_user
    return dependency

require_seller = require_role(UserType.SELLER)
require_admin = require_role(UserType.ADMIN)
