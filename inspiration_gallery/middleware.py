"""HTTP middleware: request ids, access logging, and security headers."""

import time
import uuid

from fastapi import Request

from .logger import logger

REQUEST_ID_HEADER = "X-Request-ID"

# The API only returns JSON; images are loaded by the UI straight from Cloudinary
API_CSP = "default-src 'none'; img-src https://res.cloudinary.com; frame-ancestors 'none'"

# Swagger UI / ReDoc pull their assets from jsDelivr
DOCS_PATHS = ("/docs", "/redoc")
DOCS_CSP = (
    "default-src 'self'; "
    "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
    "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
    "img-src 'self' data: https://fastapi.tiangolo.com"
)

STATIC_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


# ==================== Request ID Middleware ====================

async def add_request_id_middleware(request: Request, call_next):
    """Tag the request with the caller's X-Request-ID, or a fresh uuid4, and echo it back."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


# ==================== Request Logging Middleware ====================

async def request_logging_middleware(request: Request, call_next):
    """One access line per request; failures that escape the handlers are logged with traceback."""
    started = time.perf_counter()
    request_id = getattr(request.state, "request_id", "unknown")
    route = f"{request.method} {request.url.path}"

    try:
        response = await call_next(request)
    except Exception:
        logger.error(
            f"[{request_id}] {route} - failed after {time.perf_counter() - started:.3f}s",
            exc_info=True,
        )
        raise

    elapsed = time.perf_counter() - started
    message = f"[{request_id}] {route} - {response.status_code} in {elapsed:.3f}s"
    if response.status_code >= 500:
        logger.error(message)
    else:
        logger.info(message)
    return response


# ==================== Security Headers Middleware ====================

async def security_headers_middleware(request: Request, call_next):
    """Attach the security headers; HSTS only when running in production."""
    response = await call_next(request)

    response.headers.update(STATIC_SECURITY_HEADERS)
    is_docs = request.url.path.startswith(DOCS_PATHS)
    response.headers["Content-Security-Policy"] = DOCS_CSP if is_docs else API_CSP

    if request.app.state.context.settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    return response
