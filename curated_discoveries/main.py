import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from curated_discoveries.config import settings
from curated_discoveries.core.exceptions import CuratedError
from curated_discoveries.core.middleware import SecurityHeadersMiddleware
from curated_discoveries.modules.auth import routes as auth_routes
from curated_discoveries.modules.profiles import routes as profiles_routes
from curated_discoveries.modules.curations import routes as curations_routes
from curated_discoveries.modules.social import routes as social_routes
from curated_discoveries.modules.storage import routes as storage_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
ROUTERS = (
    auth_routes.router,
    profiles_routes.router,
    curations_routes.router,
    social_routes.router,
    storage_routes.router,
)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    description="Ranked lists, profiles and social interactions",
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(CuratedError)
async def curated_error_handler(request: Request, exc: CuratedError):
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.details}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error_code, "message": exc.message, "details": exc.details},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    details = {} if settings.is_production else {"exception": repr(exc)}
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": "Something went wrong, please try again", "details": details},
    )


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in ROUTERS:
    app.include_router(router, prefix=API_PREFIX)

_background_tasks = set()


@app.on_event("startup")
async def startup_event():
    logger.info(f"{settings.app_name} starting ({settings.environment})")
    if not settings.reconcile_enabled:
        return
    if not settings.supabase_service_role_key:
        logger.warning("RECONCILE_ENABLED is set but SUPABASE_SERVICE_ROLE_KEY is missing; reconciliation not started")
        return

    # Periodically remove auth identities left without a profile by failed sign-ups
    from curated_discoveries.modules.maintenance.reconciler import reconcile_loop
    task = asyncio.create_task(reconcile_loop())
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    logger.info(f"Reconciliation started, every {settings.reconcile_interval_seconds}s")


@app.on_event("shutdown")
async def shutdown_event():
    for task in list(_background_tasks):
        task.cancel()
    logger.info(f"{settings.app_name} stopped")


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.app_name}", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness check: ready once Supabase credentials are configured."""
    if not settings.supabase_url or not settings.supabase_key:
        return JSONResponse(status_code=503, content={"status": "not ready", "reason": "supabase not configured"})
    return {"status": "ready"}
