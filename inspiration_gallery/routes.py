# API route definitions (HTTP layer)
# Defines ENDPOINTS

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.datastructures import FormData, UploadFile

from . import services
from .config import Settings
from .context import AppContext
from .db import check_db_connection
from .dependencies import get_context, get_current_user
from .errors import NotFoundError
from .models import User
from .schemas import (
    AuthResponse,
    ErrorResponse,
    ImageUpload,
    InspirationCreate,
    InspirationEnvelope,
    InspirationFilter,
    InspirationOut,
    InspirationPatch,
    MeResponse,
    MessageResponse,
    UserLogin,
    UserOut,
    UserRegister,
)
from .utils import normalize_tags

# Toggled per app from Settings.RATE_LIMIT_ENABLED
limiter = Limiter(key_func=get_remote_address)

RATE_LIMIT_AUTH = "10/minute"
RATE_LIMIT_WRITE = "60/minute"
RATE_LIMIT_READ = "100/minute"

# Signed 64-bit range accepted by both SQLite and PostgreSQL integer columns
MIN_ID = -(2 ** 63)
MAX_ID = 2 ** 63 - 1


def _errors(*status_codes: int) -> dict:
    """OpenAPI entries documenting the error envelope for the given statuses."""
    return {code: {"model": ErrorResponse} for code in status_codes}


router = APIRouter()

# ==================== Helpers ====================


def _set_session_cookie(response: Response, settings: Settings, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_TTL_DAYS * 24 * 60 * 60,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def _parse_id(raw: str) -> int:
    """Ids that are not 64-bit integers cannot exist, so they are simply not found."""
    try:
        value = int(raw)
    except ValueError:
        raise NotFoundError("Inspiration not found", {"id": raw})
    if not MIN_ID <= value <= MAX_ID:
        raise NotFoundError("Inspiration not found", {"id": raw})
    return value


def _tags_from_form(form: FormData) -> str | list[str] | None:
    """A single ``tags`` value is a comma-separated string; repeated values are a list."""
    if "tags" not in form and "tags[]" not in form:
        return None
    values = [v for v in form.getlist("tags") + form.getlist("tags[]") if isinstance(v, str)]
    if len(values) == 1:
        return values[0]
    return values


async def _image_from_form(ctx: AppContext, form: FormData) -> ImageUpload | None:
    upload = form.get("image")
    if not isinstance(upload, UploadFile):
        return None
    # Reject on the spooled size before pulling the file into memory
    services.ensure_image_size(ctx, upload.size)
    data = await upload.read()
    if not data:
        # Empty file input
        return None
    return ImageUpload(
        data=data,
        filename=upload.filename or "upload",
        content_type=upload.content_type,
    )


def _text_field(form: FormData, name: str) -> str | None:
    value = form.get(name)
    return value if isinstance(value, str) else None


# ==================== Service Endpoints ====================

@router.get("/")
def root(ctx: AppContext = Depends(get_context)):
    return {"app": ctx.settings.APP_NAME, "env": ctx.settings.APP_ENV}


@router.get("/health")
async def health_check(ctx: AppContext = Depends(get_context)):
    """Health check endpoint for load balancers and monitoring.

    Returns:
        - 200 OK if the service and database are healthy
        - 503 Service Unavailable if the database is unreachable
    """
    health_status = {
        "status": "healthy",
        "service": ctx.settings.APP_NAME,
        "environment": ctx.settings.APP_ENV,
        "image_store": "configured" if ctx.image_store.is_configured else "disabled",
    }

    if await check_db_connection(ctx.session):
        health_status["database"] = "connected"
    else:
        health_status["status"] = "unhealthy"
        health_status["database"] = "disconnected"
        raise HTTPException(status_code=503, detail=health_status)

    return health_status


@router.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)


# ============================================================================
# Authentication Endpoints
# ============================================================================

@router.post("/api/register", response_model=AuthResponse, status_code=201, responses=_errors(400))
@limiter.limit(RATE_LIMIT_AUTH)
async def register(
    data: UserRegister,
    request: Request,
    response: Response,
    ctx: AppContext = Depends(get_context),
):
    """Register a new user and start a session.

    Raises:
        400: Missing fields, short password, or email already registered
    """
    user, token = await services.register_user(ctx, data)
    _set_session_cookie(response, ctx.settings, token)
    return AuthResponse(message="User registered successfully", user=UserOut.model_validate(user))


@router.post("/api/login", response_model=AuthResponse, responses=_errors(400))
@limiter.limit(RATE_LIMIT_AUTH)
async def login(
    credentials: UserLogin,
    request: Request,
    response: Response,
    ctx: AppContext = Depends(get_context),
):
    """Authenticate a user and set the session cookie.

    Raises:
        400: Invalid credentials (same message for unknown email and wrong password)
    """
    user, token = await services.authenticate_user(ctx, credentials)
    _set_session_cookie(response, ctx.settings, token)
    return AuthResponse(message="Login successful", user=UserOut.model_validate(user))


@router.post("/api/logout", response_model=MessageResponse)
async def logout(response: Response, ctx: AppContext = Depends(get_context)):
    """Clear the session cookie. The token itself stays valid until it expires."""
    response.delete_cookie(
        key=ctx.settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=ctx.settings.is_production,
        samesite="strict",
    )
    return MessageResponse(message="Logout successful")


@router.get("/api/me", response_model=MeResponse, responses=_errors(401))
@limiter.limit(RATE_LIMIT_READ)
async def me(request: Request, current_user: User = Depends(get_current_user)):
    """Return the user the session belongs to.

    Raises:
        401: Missing, invalid or expired session
    """
    return MeResponse(user=UserOut.model_validate(current_user))


# ============================================================================
# Inspiration Endpoints
# ============================================================================

@router.get("/api/inspirations", response_model=list[InspirationOut], responses=_errors(401, 500))
@limiter.limit(RATE_LIMIT_READ)
async def list_inspirations(
    request: Request,
    search: str | None = None,
    tags: str | None = None,  # comma-separated, all must match
    ctx: AppContext = Depends(get_context),
    current_user: User = Depends(get_current_user),
):
    filters = InspirationFilter(search=search or None, tags=normalize_tags(tags))
    inspirations = await services.list_inspirations(ctx, current_user.id, filters)
    return [InspirationOut.model_validate(i) for i in inspirations]


@router.post(
    "/api/inspirations",
    response_model=InspirationEnvelope,
    status_code=201,
    responses=_errors(400, 401, 500),
)
@limiter.limit(RATE_LIMIT_WRITE)
async def create_inspiration(
    request: Request,
    ctx: AppContext = Depends(get_context),
    current_user: User = Depends(get_current_user),
):
    """Create an inspiration from a multipart form (title, description, tags, image).

    Raises:
        400: Missing title or oversized image
    """
    form = await request.form()
    data = InspirationCreate(
        title=_text_field(form, "title"),
        description=_text_field(form, "description"),
        tags=_tags_from_form(form),
    )
    image = await _image_from_form(ctx, form)
    inspiration = await services.create_inspiration(ctx, current_user.id, data, image)
    return InspirationEnvelope(
        message="Inspiration created successfully",
        inspiration=InspirationOut.model_validate(inspiration),
    )


@router.put(
    "/api/inspirations/{inspiration_id}",
    response_model=InspirationEnvelope,
    responses=_errors(400, 401, 404, 500),
)
@limiter.limit(RATE_LIMIT_WRITE)
async def update_inspiration(
    inspiration_id: str,
    request: Request,
    ctx: AppContext = Depends(get_context),
    current_user: User = Depends(get_current_user),
):
    """Partially update an inspiration (title, description, tags, image, removeImage).

    Raises:
        404: Not found or owned by another user
    """
    record_id = _parse_id(inspiration_id)
    form = await request.form()
    patch = InspirationPatch(
        title=_text_field(form, "title"),
        description=_text_field(form, "description"),
        tags=_tags_from_form(form),
        remove_image=(_text_field(form, "removeImage") or "").lower() == "true",
    )
    image = await _image_from_form(ctx, form)
    inspiration = await services.update_inspiration(ctx, current_user.id, record_id, patch, image)
    return InspirationEnvelope(
        message="Inspiration updated successfully",
        inspiration=InspirationOut.model_validate(inspiration),
    )


@router.delete(
    "/api/inspirations/{inspiration_id}",
    response_model=MessageResponse,
    responses=_errors(401, 404, 500),
)
@limiter.limit(RATE_LIMIT_WRITE)
async def delete_inspiration(
    inspiration_id: str,
    request: Request,
    ctx: AppContext = Depends(get_context),
    current_user: User = Depends(get_current_user),
):
    """Delete an inspiration.

    Raises:
        404: Not found or owned by another user
    """
    await services.delete_inspiration(ctx, current_user.id, _parse_id(inspiration_id))
    return MessageResponse(message="Inspiration deleted successfully")
