import logging

from aiogram import F, Router
from aiogram.types import CallbackQuery, Message

from assistant.db.session import SessionLocal
from assistant.services.assistant import AssistantRuntime, build_assistant
from assistant.services.messaging import build_keyboard

logger = logging.getLogger(__name__)


def create_router(runtime: AssistantRuntime) -> Router:
    router = Router()

    @router.message(F.text)
    async def on_text_message(message: Message) -> None:
        if message.from_user is None or not message.text:
            return
        user_id = str(message.from_user.id)
        try:
            async with SessionLocal() as session:
                reply = await build_assistant(session, runtime).handle_message(user_id, message.text)
        except Exception:
            logger.exception("Message handling failed: user_id=%s", user_id)
            await message.answer("Something went wrong. Please try again.")
            return
        await message.answer(reply.text, reply_markup=build_keyboard(reply.buttons))

    @router.callback_query(F.data)
    async def on_callback(query: CallbackQuery) -> None:
        user_id = str(query.from_user.id)
        try:
            async with SessionLocal() as session:
                reply = await build_assistant(session, runtime).handle_callback(user_id, query.data or "")
        except Exception:
            logger.exception("Callback handling failed: user_id=%s data=%s", user_id, query.data)
            await query.answer("Something went wrong.")
            return
        await query.answer()
        if query.message is not None:
            # drop the buttons so the same control cannot be pressed twice
            await query.message.edit_reply_markup(reply_markup=None)
            await query.message.answer(reply.text, reply_markup=build_keyboard(reply.buttons))

    return router
