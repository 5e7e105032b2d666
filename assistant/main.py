import logging
from contextlib import asynccontextmanager

from aiogram.utils.token import TokenValidationError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from assistant.api.routes import router as api_router
from assistant.core.settings import get_settings
from assistant.observability.logging_config import configure_logging
from assistant.services.assistant import build_runtime
from assistant.services.messaging import TelegramMessenger
from assistant.services.scheduler import SCHEDULER_JOB_ID, run_scheduler_tick
from assistant.telegram.runtime import build_bot, build_dispatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.app_log_level)
    runtime = build_runtime()
    bot = None
    dispatcher = None
    try:
        bot = build_bot()
        dispatcher = build_dispatcher(runtime)
    except TokenValidationError:
        logger.warning("Telegram bot token is invalid. Webhook processing and delivery are disabled.")
    app.state.bot = bot
    app.state.dispatcher = dispatcher
    app.state.runtime = runtime
    app.state.messenger = TelegramMessenger(bot) if bot is not None else None
    scheduler = AsyncIOScheduler(timezone="UTC")
    app.state.scheduler = scheduler
    if app.state.messenger is not None:
        scheduler.add_job(
            run_scheduler_tick,
            "interval",
            seconds=settings.scheduler_interval_seconds,
            kwargs={"messenger": app.state.messenger},
            max_instances=1,
            coalesce=True,
            id=SCHEDULER_JOB_ID,
            replace_existing=True,
        )
        scheduler.start()
    logger.info("Application started")
    try:
        yield
    finally:
        if scheduler.running:
            scheduler.shutdown(wait=False)
        if bot is not None:
            await bot.session.close()
        logger.info("Application stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(api_router)
    return app


app = create_app()
