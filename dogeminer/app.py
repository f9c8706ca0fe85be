"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dogeminer.config import Config
from dogeminer.datasources import (
    BlockCypherExplorer,
    BlockExplorer,
    FaucetPayClient,
    ResendMailer,
    Store,
    SupabaseStore,
)
from dogeminer.errors import DogeMinerError
from dogeminer.api import router
from dogeminer.api.dependencies import set_dependencies

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def create_app(
    config: Config | None = None,
    store: Store | None = None,
    explorer: BlockExplorer | None = None,
    faucetpay: FaucetPayClient | None = None,
    mailer: ResendMailer | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application configuration. If None, loads from environment.
        store: Store to use instead of the Supabase project from ``config``
        explorer: Block explorer to use instead of BlockCypher
        faucetpay: FaucetPay client to use instead of one built from ``config``
        mailer: Mailer for admin emails; built from ``config`` when a Resend key is set

    Returns:
        Configured FastAPI application
    """
    if config is None:
        config = Config.from_env()

    if store is None:
        store = SupabaseStore(config.supabase_url, config.supabase_service_role_key)
    if explorer is None:
        explorer = BlockCypherExplorer(api_url=config.explorer_api_url)
    if faucetpay is None:
        faucetpay = FaucetPayClient(config.faucetpay_api_key)
    if mailer is None and config.resend_api_key:
        mailer = ResendMailer(config.resend_api_key)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown."""
        # Startup
        logger.info("Starting DogeMiner deposit API")
        logger.info(f"Using Supabase project: {config.supabase_url}")
        logger.info(f"Using block explorer: {config.explorer_api_url}")
        if mailer is None:
            logger.info("Admin deposit emails disabled (no RESEND_API_KEY)")

        set_dependencies(config, store, explorer, faucetpay, mailer)

        yield

        # Shutdown
        logger.info("Shutting down...")
        await store.close()
        await explorer.close()
        await faucetpay.close()
        if mailer is not None:
            await mailer.close()

    app = FastAPI(
        title="DogeMiner Deposit API",
        description="Deposit issuance, on-chain verification, expiry and abuse checks",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Registered before CORS so unexpected 500s still get CORS headers
    @app.middleware("http")
    async def catch_unexpected_errors(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception(f"Unhandled error on {request.url.path}")
            return _error(500, str(exc) or "Internal error")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    @app.exception_handler(DogeMinerError)
    async def handle_app_error(request: Request, exc: DogeMinerError):
        if exc.status_code >= 500:
            logger.error(f"{request.url.path} failed: {exc.message}")
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "body"
            message = f"Invalid {field}: {first.get('msg', 'invalid value')}"
        else:
            message = "Invalid request"
        return _error(400, message)

    # Include API routes
    app.include_router(router)

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app
