"""FastAPI dependencies for the application context and authentication."""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .context import AppContext
from .models import User
from .services import resolve_session

# Bearer header is a fallback; browsers send the session cookie
bearer_scheme = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    """Return the AppContext attached to the application at startup."""
    return request.app.state.context


async def get_current_user(
    request: Request,
    ctx: AppContext = Depends(get_context),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> User:
    """Resolve the session cookie (or Bearer token) to a user. Raises AuthError (401) otherwise."""
    token = request.cookies.get(ctx.settings.SESSION_COOKIE_NAME)
    if not token and credentials is not None:
        token = credentials.credentials
    return await resolve_session(ctx, token)
