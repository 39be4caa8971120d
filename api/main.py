import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from accounts import router as accounts_router
from accounts.service import AccountService
from auth import router as auth_router
from auth.interceptor import Interceptor
from auth.policy import accessible_roles
from auth.service import AuthService, PasswordResetService
from auth.tokens import TokenManager
from core import db
from core.errors import (
    AccessDenied,
    AlreadyExists,
    DomainError,
    InvalidCredentials,
    InvalidPassword,
    InvalidToken,
    NotFound,
)
from core.mailer import HttpMailer, LogMailer, Mailer
from core.settings import Settings, load_settings
from core.tasks import TaskRegistry
from listings import router as listings_router
from listings.importer import ListingImporter
from listings.service import ListingService
from store.unit_of_work import Store

logger = logging.getLogger(__name__)

Lifespan = Callable[[FastAPI], AbstractAsyncContextManager[None]]

_STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (AccessDenied, status.HTTP_401_UNAUTHORIZED),
    (InvalidToken, status.HTTP_401_UNAUTHORIZED),
    (InvalidCredentials, status.HTTP_401_UNAUTHORIZED),
    (AlreadyExists, status.HTTP_409_CONFLICT),
    (InvalidPassword, status.HTTP_400_BAD_REQUEST),
)


def status_for(exc: DomainError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("request_failed method=%s path=%s error=%s", request.method, request.url.path, type(exc).__name__)
        return JSONResponse(status_code=code, content={"detail": "Internal server error"})

    logger.info("request_rejected method=%s path=%s status=%s error=%s", request.method, request.url.path, code, exc)
    headers = {"WWW-Authenticate": "Bearer"} if code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=code, content={"detail": str(exc)}, headers=headers)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_failed method=%s path=%s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def _build_mailer(settings: Settings) -> Mailer:
    if settings.mailer_url:
        return HttpMailer.from_url(settings.mailer_url, timeout_s=settings.background_task_timeout.total_seconds())
    logger.warning("mailer_disabled reason=MAILER_URL not set")
    return LogMailer()


def default_lifespan(settings: Settings) -> Lifespan:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Initialize the DB pool once per process.
        pool = await db.create_pool(settings)
        store = Store(pool, timeout=settings.db_command_timeout.total_seconds())
        tokens = TokenManager(settings.auth_secret_key, settings.auth_token_duration)
        tasks = TaskRegistry(default_timeout=settings.background_task_timeout)
        mailer = _build_mailer(settings)
        importer = ListingImporter.with_timeout(settings.importer_timeout.total_seconds())

        app.state.tokens = tokens
        app.state.interceptor = Interceptor(tokens, accessible_roles())
        app.state.auth_service = AuthService(store, tokens)
        app.state.password_reset_service = PasswordResetService(
            store, mailer, tasks, token_ttl=settings.password_reset_ttl
        )
        app.state.account_service = AccountService(store)
        app.state.listing_service = ListingService(store, importer)
        logger.info("api_started host=%s port=%s", settings.http_host, settings.http_port)
        try:
            yield
        finally:
            if not await tasks.wait(settings.http_shutdown_timeout):
                await tasks.cancel()
            await importer.aclose()
            await mailer.aclose()
            await pool.close()
            logger.info("api_stopped")

    return lifespan


def create_app(settings: Settings | None = None, *, lifespan: Lifespan | None = None) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(lifespan=lifespan or default_lifespan(settings))

    # Allow the configured frontends to call this API from the browser.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(auth_router.router, tags=["auth"])
    app.include_router(accounts_router.router, tags=["accounts"])
    app.include_router(listings_router.router, tags=["listings"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


def run() -> None:
    import uvicorn

    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run(
        create_app(settings),
        host=settings.http_host,
        port=settings.http_port,
        timeout_graceful_shutdown=int(settings.http_shutdown_timeout.total_seconds()),
    )


if __name__ == "__main__":
    run()
