from aiogram import Bot, Dispatcher

from assistant.core.settings import get_settings
from assistant.services.assistant import AssistantRuntime
from assistant.telegram.handlers import create_router


def build_bot() -> Bot:
    settings = get_settings()
    return Bot(token=settings.telegram_bot_token)


def build_dispatcher(runtime: AssistantRuntime) -> Dispatcher:
    dispatcher = Dispatcher()
    dispatcher.include_router(create_router(runtime))
    return dispatcher
