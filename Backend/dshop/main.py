import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from .core.config import get_settings
from .core.db import Base, engine
from .core.request_context import AuthenticationError, AuthorizationError
from .core.responses import failure_response
from .auth import router as auth_router
from .rate_limiter import RateLimitHeadersMiddleware
from .shop_config import router as shop_config_router
from .superuser import router as superuser_router


settings = get_settings()
app = FastAPI(title="Dshop Backend")
logger = logging.getLogger(__name__)


app.add_middleware(RateLimitHeadersMiddleware)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    max_age=settings.session_max_age,
    same_site="lax",
    https_only=settings.session_https_only,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return failure_response(exc.status_code, message=exc.message)


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError):
    return failure_response(exc.status_code, message=exc.message)


app.include_router(auth_router)
app.include_router(superuser_router)
app.include_router(shop_config_router)


@app.on_event("startup")
async def on_startup() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")


@app.get("/health")
async def health():
    return {"status": "ok"}
