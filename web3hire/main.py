"""web3hire Backend API - FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from . import __version__
from .config import get_settings
from .database import USERS_TABLE, execute, get_supabase_client
from .errors import MarketplaceError, UpstreamFailureError, marketplace_error_handler
from .logging_config import get_logger, setup_logging
from .rate_limit import limiter
from .routes import auth_router, jobs_router, matching_router, tasks_router, users_router

logger = get_logger("web3hire.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info(f"Starting web3hire API (debug={settings.debug})")
    yield
    logger.info("Shutting down web3hire API")


app = FastAPI(
    title="web3hire API",
    description="Wallet-authenticated job and task marketplace",
    version=__version__,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Marketplace errors render as {"detail", "kind"}
app.add_exception_handler(MarketplaceError, marketplace_error_handler)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(tasks_router)
app.include_router(jobs_router)
app.include_router(matching_router)


@app.get("/")
async def root():
    """Liveness check."""
    return {
        "service": "web3hire-backend",
        "version": __version__,
        "status": "ok",
    }


@app.get("/health")
async def health():
    """Health check that verifies the database is reachable."""
    db_status = "connected"
    try:
        execute(get_supabase_client().table(USERS_TABLE).select("id").limit(1), "check health")
    except (UpstreamFailureError, ValueError) as e:
        db_status = f"error: {str(e)[:50]}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
    }
