import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from config import ALLOWED_HOSTS, FRONTEND_URL, LOG_LEVEL, UPLOAD_DIR
from database import init_db
from dependencies import limiter
from uploads import AttachmentFiles

# Routers
from routers.auth import router as auth_router
from routers.users import router as users_router
from routers.tasks import router as tasks_router
from routers.timeline import router as timeline_router
from routers.projects import router as projects_router
from routers.labels import router as labels_router
from routers.admin import router as admin_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

init_db()

app = FastAPI(title="Schedule API")

# Rate Limiter Setup (Globally available via app.state.limiter)
app.state.limiter = limiter


# Custom Rate Limit Handler
def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded):
    limit_info = exc.detail or "rate limit"
    return JSONResponse(
        status_code=429,
        content={"message": f"Too many requests ({limit_info}). Please wait a moment."},
    )
app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": str(exc) or "Internal server error"})


# Custom Middleware for Security Headers
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Content-Security-Policy"] = "default-src 'self'; script-src 'self' 'unsafe-inline' 'unsafe-eval'; style-src 'self' 'unsafe-inline'; img-src 'self' data: https:;"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        return response

app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    # Only the web client; credentials are needed for the session cookie
    allow_origins=[FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=ALLOWED_HOSTS
)

# Include Routers
for router in (auth_router, users_router, tasks_router, timeline_router, projects_router, labels_router, admin_router):
    app.include_router(router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "OK", "message": "Server is running"}


# Uploaded attachments
os.makedirs(UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", AttachmentFiles(directory=UPLOAD_DIR), name="uploads")

# Mount Static Files (Frontend)
frontend_build_path = os.path.join(os.path.dirname(__file__), 'frontend', 'build')
if os.path.exists(frontend_build_path):
    app.mount("/", StaticFiles(directory=frontend_build_path, html=True), name="static")
else:
    logger.warning("Frontend build path not found at %s", frontend_build_path)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
