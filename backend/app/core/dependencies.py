import logging
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import decode_token
from app.db.session import get_session
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _subject_from_token(token: str) -> UUID:
    """Return the user id carried by an access token, or raise 401."""
    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        raise _unauthorized("Invalid token")
    try:
        return UUID(str(payload.get("sub")))
    except ValueError as exc:
        raise _unauthorized("Invalid token payload") from exc


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> User:
    if credentials is None:
        raise _unauthorized("Not authenticated")

    user_id = _subject_from_token(credentials.credentials)
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _unauthorized("User not found")
    return user


async def require_admin(request: Request, user: User = Depends(get_current_user)) -> User:
    """Gate for draws, announcements and refunds; records the acting admin on the request."""
    if user.role != UserRole.admin:
        logger.warning(
            "admin_access_denied",
            extra={"user_id": str(user.id), "path": request.url.path},
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    request.state.admin_user_id = str(user.id)
    return user
