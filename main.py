"""LMS Accounts - learner registration, authentication and profile service."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.database import get_db, init_db
from app.dependencies import get_current_user_from_cookie
from app.errors import AccountError
from app.rate_limit import limiter
from app.routers import user_router
from app.services.account import get_account_service
from app.services.mail import TEMPLATES_DIR

# Logging
logger = logging.getLogger("lms_accounts")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    for warning in settings.validate():
        logger.warning("Config: %s", warning)
    init_db()
    yield


app = FastAPI(title="LMS Accounts", version="0.1.0", lifespan=lifespan)
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'self'; img-src 'self' data: https:; style-src 'self' 'unsafe-inline'"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    MAX_BODY_SIZE = (settings.MAX_AVATAR_SIZE_MB + 1) * 1024 * 1024  # avatar plus form fields

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return JSONResponse(status_code=413, content={"success": False, "message": "Request body too large"})
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PREFIX = "/api/v1/user/"

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        path = request.url.path
        method = request.method
        if method in ("POST", "PUT", "DELETE") and path.startswith(self.AUDIT_PREFIX):
            # Reset tokens travel in the path; never log them.
            logged_path = "/api/v1/user/reset/***" if path.startswith("/api/v1/user/reset/") else path
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                method,
                logged_path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(AuditLogMiddleware)

# Avatar files
if settings.MEDIA_URL.startswith("/"):
    app.mount(settings.MEDIA_URL, StaticFiles(directory=settings.MEDIA_DIR, check_dir=False), name="media")

# Templates
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

# API routers
app.include_router(user_router)


def envelope(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message}, headers=headers)


# --- Error handlers ---
@app.exception_handler(AccountError)
async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    """Convert service failures to the response envelope."""
    return envelope(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return envelope(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are reported as bad requests, not 422s."""
    fields = sorted({".".join(str(p) for p in err["loc"][1:]) or "body" for err in exc.errors()})
    return envelope(400, f"Invalid request: {', '.join(fields)}")


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded."""
    return envelope(429, "Rate limit exceeded. Try again later.")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return envelope(500, "Internal server error")


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "lms-accounts", "version": "0.1.0"}


# --- Web routes ---
@app.get("/checkout/success", response_class=HTMLResponse)
def checkout_success(request: Request, db: Session = Depends(get_db)) -> HTMLResponse:
    """Render the course purchase confirmation page."""
    name = None
    current = get_current_user_from_cookie(request)
    if current:
        profile = get_account_service().get_by_id(db, current.user_id)
        name = profile.name if profile else None
    return templates.TemplateResponse(
        request,
        "checkout_success.html",
        {"name": name, "home_url": settings.FRONTEND_URL},
    )
