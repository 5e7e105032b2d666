from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from aiogram import Bot
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from assistant.core.callbacks import done_data, github_cancel_data, github_confirm_data, snooze_data


@dataclass(slots=True, frozen=True)
class Button:
    label: str
    callback_data: str


ButtonRows = list[list[Button]]


@dataclass(slots=True)
class Reply:
    text: str
    buttons: ButtonRows | None = None
    pending_action_id: int | None = None


class Messenger(Protocol):
    async def send_message(self, user_id: str, text: str, buttons: ButtonRows | None = None) -> None: ...


def confirm_buttons(action_id: int) -> ButtonRows:
    return [
        [
            Button("✅ Confirm", github_confirm_data(action_id)),
            Button("❌ Cancel", github_cancel_data(action_id)),
        ]
    ]


def reminder_buttons(reminder_id: int) -> ButtonRows:
    return [
        [
            Button("⏰ Snooze 10m", snooze_data(reminder_id, 10)),
            Button("⏰ Snooze 1h", snooze_data(reminder_id, 60)),
        ],
        [Button("✅ Done", done_data(reminder_id))],
    ]


def build_keyboard(buttons: ButtonRows | None) -> InlineKeyboardMarkup | None:
    if not buttons:
        return None
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=button.label, callback_data=button.callback_data) for button in row]
            for row in buttons
        ]
    )


class TelegramMessenger:
    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_message(self, user_id: str, text: str, buttons: ButtonRows | None = None) -> None:
        await self._bot.send_message(chat_id=int(user_id), text=text, reply_markup=build_keyboard(buttons))
