import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from flick.core.config import get_settings
from flick.core.exceptions import register_exception_handlers
from flick.core.logging_config import setup_logging
from flick.core.middleware import CorrelationIDMiddleware, JWTValidationMiddleware
from flick.core.posthog import init_posthog, shutdown_posthog
from flick.core.rate_limit import limiter, rate_limit_exceeded_handler
from flick.core.redis import close_redis, init_redis
from flick.core.storage import RedisKeyValueStorage
from flick.core.timers import LoopTimers
from flick.routers import health, notifications, reactions
from flick.services.notification_service import (
    NotificationDispatchFacade,
    NotificationService,
    ReactionNotifier,
)
from flick.services.push_service import PushNotificationService
from flick.services.reaction_batching import ReactionBatchingScheduler
from flick.services.reaction_service import ReactionService

settings = get_settings()
logger = logging.getLogger(__name__)


def build_reaction_service() -> ReactionService:
    """Wire the single per-process reaction stack (scheduler, notifier, stores)."""
    scheduler = ReactionBatchingScheduler(
        timers=LoopTimers(),
        window_seconds=settings.reaction_batch_window_seconds,
    )
    facade = NotificationDispatchFacade(NotificationService(), PushNotificationService())
    return ReactionService(
        notifier=ReactionNotifier(facade, scheduler),
        storage=RedisKeyValueStorage(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    logger.info("Starting %s...", settings.app_name)
    await init_redis()
    init_posthog()
    app.state.reaction_service = build_reaction_service()
    yield
    logger.info("Shutting down %s...", settings.app_name)
    reaction_service: ReactionService = app.state.reaction_service
    # Open batch windows are process-local and are dropped, not flushed.
    reaction_service.notifier.scheduler.clear_all()
    await reaction_service.notifier.scheduler.drain()
    await reaction_service.flush()
    shutdown_posthog()
    await close_redis()
    logger.info("Redis connection closed")


app = FastAPI(
    title=settings.app_name,
    description="Event photo challenge API for Flick",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# JWT validation runs after CORS, before routes; correlation ID wraps everything
app.add_middleware(JWTValidationMiddleware)
app.add_middleware(CorrelationIDMiddleware)

# Rate limiting (slowapi + Redis)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

register_exception_handlers(app)

app.include_router(health.router, tags=["Health"])
app.include_router(reactions.router, prefix=f"{settings.api_prefix}/photos", tags=["Reactions"])
app.include_router(
    notifications.router, prefix=f"{settings.api_prefix}/notifications", tags=["Notifications"]
)
