from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter

from assistant.schemas.github_actions import GithubIntent


class CommandName(str, Enum):
    github_action = "github_action"
    create_reminder = "create_reminder"
    focus_timer = "focus_timer"
    list_reminders = "list_reminders"
    cancel_reminder = "cancel_reminder"
    digest_show = "digest_show"
    digest_add_item = "digest_add_item"
    digest_remove_item = "digest_remove_item"
    digest_set_time = "digest_set_time"
    digest_set_enabled = "digest_set_enabled"
    chat = "chat"


class GithubActionCommand(BaseModel):
    command: Literal[CommandName.github_action]
    github: GithubIntent


class CreateReminderCommand(BaseModel):
    command: Literal[CommandName.create_reminder]
    message: str = Field(min_length=1, max_length=1000)
    remind_at: datetime


class FocusTimerCommand(BaseModel):
    command: Literal[CommandName.focus_timer]
    duration_minutes: int = Field(ge=1, le=24 * 60)
    message: str = Field(default="Focus session", max_length=1000)


class ListRemindersCommand(BaseModel):
    command: Literal[CommandName.list_reminders]


class CancelReminderCommand(BaseModel):
    command: Literal[CommandName.cancel_reminder]
    reminder_id: int = Field(ge=1)


class DigestShowCommand(BaseModel):
    command: Literal[CommandName.digest_show]


class DigestAddItemCommand(BaseModel):
    command: Literal[CommandName.digest_add_item]
    item: str


class DigestRemoveItemCommand(BaseModel):
    command: Literal[CommandName.digest_remove_item]
    item: str


class DigestSetTimeCommand(BaseModel):
    command: Literal[CommandName.digest_set_time]
    time: str


class DigestSetEnabledCommand(BaseModel):
    command: Literal[CommandName.digest_set_enabled]
    enabled: bool


class ChatCommand(BaseModel):
    command: Literal[CommandName.chat]
    reply: str = ""


AssistantCommand = Annotated[
    GithubActionCommand
    | CreateReminderCommand
    | FocusTimerCommand
    | ListRemindersCommand
    | CancelReminderCommand
    | DigestShowCommand
    | DigestAddItemCommand
    | DigestRemoveItemCommand
    | DigestSetTimeCommand
    | DigestSetEnabledCommand
    | ChatCommand,
    Field(discriminator="command"),
]


class Classification(BaseModel):
    intent: AssistantCommand
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    needs_clarification: bool = False
    question: str | None = None


classification_adapter = TypeAdapter(Classification)
