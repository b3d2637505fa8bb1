# family_portal/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from family_portal.config import settings
from family_portal.core.db import init_db, close_db
from family_portal.core.errors import PortalError
from family_portal.core.rate_limit import RateLimiter, rate_limit_middleware

from family_portal.api.routers import auth, chat, history, invites, users

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Per-address abuse guard on /api (tests replace app.state.rate_limiter)
app.state.rate_limiter = RateLimiter(
    settings.rate_limit_max_requests, settings.rate_limit_window_seconds
)
app.middleware("http")(rate_limit_middleware)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("[api] unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": {"code": "INTERNAL_ERROR", "message": "Internal server error"}},
    )


@app.on_event("startup")
async def on_startup():
    await init_db()
    if not settings.openai_api_key:
        logger.warning("[chat] OPENAI_API_KEY is not set, /api/chat will answer 500")
    if settings.jwt_secret == "dev-secret" and settings.env != "dev":
        logger.warning("[auth] JWT_SECRET is the development default")


@app.on_event("shutdown")
async def on_shutdown():
    await close_db()


# REST
app.include_router(auth.router, prefix="/api")
app.include_router(chat.router, prefix="/api")
app.include_router(history.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(invites.router, prefix="/api")


@app.get("/healthz")
def healthz():
    return {"ok": True}
