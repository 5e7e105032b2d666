"""Chat front door: slash commands, classifier dispatch and inline-button callbacks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from assistant.core.callbacks import parse_callback_data
from assistant.core.crypto import SecretKeyError
from assistant.core.settings import get_settings
from assistant.models.user import User
from assistant.repositories.automation_repository import AutomationRepository
from assistant.repositories.pending_action_repository import PendingActionRepository
from assistant.repositories.reminder_repository import ReminderRepository
from assistant.repositories.user_repository import UserRepository
from assistant.schemas.commands import Classification, CommandName
from assistant.schemas.github_actions import GithubIntent
from assistant.services.code_editor import CodeEditor
from assistant.services.conversation_history import ConversationHistory
from assistant.services.digest_service import DigestService
from assistant.services.github_client import split_repo
from assistant.services.github_oauth import GithubOAuthService, OAuthError
from assistant.services.github_service import GithubActionService
from assistant.services.guardrails import ChatRateLimiter
from assistant.services.llm_service import (
    LLMCircuitOpenError,
    LLMCommandValidationError,
    LLMRateLimitError,
    LLMService,
    LLMUnavailableError,
)
from assistant.services.messaging import Reply
from assistant.services.reminder_service import (
    ReminderError,
    ReminderService,
    format_created,
    format_reminder_list,
    format_snoozed,
)
from assistant.services.user_service import UserService

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Hi! I can manage GitHub for you, set reminders and send a morning job digest.\n\n"
    "Commands:\n"
    "/github connect | /github token <PAT> | /github disconnect\n"
    "/github repo owner/name | /github repos\n"
    "/timezone Area/City\n"
    "/list | /cancel <id>\n"
    "/digest\n\n"
    "Or just write what you need, e.g. \"open an issue about the login crash\"."
)
CLARIFY_FALLBACK = "Could you tell me a bit more about what you'd like me to do?"


class AssistantService:
    def __init__(
        self,
        *,
        users: UserService,
        github: GithubActionService,
        reminders: ReminderService,
        digest: DigestService,
        llm: LLMService,
        history: ConversationHistory,
        rate_limiter: ChatRateLimiter | None = None,
        oauth: GithubOAuthService | None = None,
        min_confidence: float | None = None,
    ) -> None:
        self._users = users
        self._github = github
        self._reminders = reminders
        self._digest = digest
        self._llm = llm
        self._history = history
        self._rate_limiter = rate_limiter
        self._oauth = oauth
        self._min_confidence = min_confidence if min_confidence is not None else get_settings().llm_min_confidence

    async def handle_message(self, user_id: str, text: str, now: datetime | None = None) -> Reply:
        now = now or datetime.now(timezone.utc)
        text = text.strip()
        if not text:
            return Reply("Send me a text message.")
        user = await self._users.get_or_create(user_id)

        if text.startswith("/"):
            return await self._handle_slash(user, text, now)

        if self._rate_limiter is not None and not self._rate_limiter.allow(user_id, now):
            wait = self._rate_limiter.retry_after(user_id, now)
            return Reply(f"Too many messages. Try again in {wait} s.")

        try:
            classification = await self._llm.classify(
                text,
                history=self._history.recent(user_id, now),
                timezone_name=user.timezone,
                now=now,
            )
        except LLMRateLimitError:
            return Reply("The language model is over its rate limit right now. Please try again later.")
        except LLMCircuitOpenError:
            return Reply("The language model is temporarily unavailable. Try again in a minute.")
        except LLMUnavailableError:
            return Reply("I couldn't reach the language model. Please try again.")
        except LLMCommandValidationError:
            return Reply("Sorry, I didn't get that. Could you rephrase?")

        reply = await self._dispatch(user, classification, now)
        self._history.append(user_id, "user", text, now)
        self._history.append(user_id, "assistant", reply.text, now)
        return reply

    async def handle_callback(self, user_id: str, data: str, now: datetime | None = None) -> Reply:
        now = now or datetime.now(timezone.utc)
        action = parse_callback_data(data)
        if action is None:
            logger.info("Unknown callback payload: user_id=%s data=%s", user_id, data)
            return Reply("Unknown action.")

        if action.kind == "gh_confirm":
            return await self._github.confirm(user_id, action.target_id, now)
        if action.kind == "gh_cancel":
            return await self._github.cancel(user_id, action.target_id)

        user = await self._users.get_or_create(user_id)
        if action.kind == "snooze":
            minutes = action.minutes or 10
            reminder = await self._reminders.snooze(user_id, action.target_id, minutes, now)
            if reminder is None:
                return Reply("Reminder not found.")
            return Reply(format_snoozed(reminder, minutes, user.timezone))
        if await self._reminders.mark_done(user_id, action.target_id):
            return Reply("✅ Marked as done.")
        return Reply("Reminder not found.")

    async def _dispatch(self, user: User, classification: Classification, now: datetime) -> Reply:
        if classification.needs_clarification or classification.confidence < self._min_confidence:
            logger.info(
                "Clarification requested: user_id=%s confidence=%.2f",
                user.user_id,
                classification.confidence,
            )
            return Reply(classification.question or CLARIFY_FALLBACK)

        command = classification.intent
        if command.command == CommandName.github_action:
            return await self._github.propose(user, command.github, now)

        if command.command == CommandName.create_reminder:
            try:
                reminder = await self._reminders.create(user, command.message, command.remind_at, now)
            except ReminderError as exc:
                return Reply(str(exc))
            return Reply(format_created(reminder, user.timezone))

        if command.command == CommandName.focus_timer:
            try:
                reminder = await self._reminders.create_focus_timer(
                    user, command.duration_minutes, command.message, now
                )
            except ReminderError as exc:
                return Reply(str(exc))
            return Reply(format_created(reminder, user.timezone))

        if command.command == CommandName.list_reminders:
            items = await self._reminders.list_upcoming(user, now)
            return Reply(format_reminder_list(items, user.timezone))

        if command.command == CommandName.cancel_reminder:
            return await self._cancel_reminder(user, command.reminder_id)

        if command.command == CommandName.digest_show:
            return Reply(await self._digest.get_state(user.user_id))
        if command.command == CommandName.digest_add_item:
            return Reply(await self._digest.add_item(user.user_id, command.item))
        if command.command == CommandName.digest_remove_item:
            return Reply(await self._digest.remove_item(user.user_id, command.item))
        if command.command == CommandName.digest_set_time:
            return Reply(await self._digest.set_time(user.user_id, command.time))
        if command.command == CommandName.digest_set_enabled:
            return Reply(await self._digest.set_enabled(user.user_id, command.enabled))

        return Reply(command.reply or "I'm here. Ask me about GitHub, reminders or your morning job list.")

    async def _cancel_reminder(self, user: User, reminder_id: int) -> Reply:
        if await self._reminders.cancel(user.user_id, reminder_id):
            return Reply(f"🗑 Reminder #{reminder_id} canceled.")
        return Reply(f"No active reminder #{reminder_id}.")

    async def _handle_slash(self, user: User, text: str, now: datetime) -> Reply:
        parts = text.split()
        command = parts[0].split("@", 1)[0].lower()
        args = parts[1:]

        if command in ("/start", "/help"):
            return Reply(HELP_TEXT)
        if command == "/github":
            return await self._handle_github_command(user, args, now)
        if command == "/timezone":
            if not args:
                return Reply(f"Your timezone is {user.timezone}. Change it with /timezone Area/City.")
            if not await self._users.update_timezone(user.user_id, args[0]):
                return Reply("Unknown timezone. Use an IANA name like Europe/Berlin.")
            return Reply(f"✅ Timezone set to {args[0]}.")
        if command == "/list":
            items = await self._reminders.list_upcoming(user, now)
            return Reply(format_reminder_list(items, user.timezone))
        if command == "/cancel":
            if len(args) != 1 or not args[0].lstrip("#").isdigit():
                return Reply("Usage: /cancel <reminder id>")
            return await self._cancel_reminder(user, int(args[0].lstrip("#")))
        if command == "/digest":
            return Reply(await self._digest.get_state(user.user_id))
        return Reply("Unknown command. Send /help for the list.")

    async def _handle_github_command(self, user: User, args: list[str], now: datetime) -> Reply:
        sub = args[0].lower() if args else ""
        if sub == "repo":
            if len(args) < 2:
                current = user.github_repo or "not set"
                return Reply(f"Default repo: {current}. Set it with /github repo owner/name")
            try:
                owner, name = split_repo(args[1])
            except ValueError:
                return Reply("Repo must be in owner/name format.")
            await self._users.set_default_repo(user.user_id, f"{owner}/{name}")
            return Reply(f"✅ Default repo set to {owner}/{name}.")
        if sub == "repos":
            return await self._github.propose(user, GithubIntent(action="list_repos"), now)
        if sub == "token":
            if len(args) < 2:
                return Reply("Usage: /github token <personal access token>")
            try:
                await self._users.set_github_token(user.user_id, args[1], "pat")
            except SecretKeyError:
                logger.error("GitHub token encryption key is missing or invalid")
                return Reply("Token storage is not configured on this server.")
            logger.info("GitHub token stored: user_id=%s auth_type=pat", user.user_id)
            return Reply("✅ GitHub token saved. You can delete the message containing it.")
        if sub == "connect":
            if self._oauth is None or not self._oauth.configured:
                return Reply("GitHub OAuth is not set up here. Use /github token <PAT> instead.")
            try:
                url = await self._oauth.start(user.user_id, now)
            except OAuthError as exc:
                return Reply(str(exc))
            return Reply(f"Open this link to connect GitHub (valid for 10 minutes):\n{url}")
        if sub == "disconnect":
            await self._users.clear_github_token(user.user_id)
            return Reply("GitHub disconnected.")
        return Reply("Usage: /github connect | token <PAT> | disconnect | repo owner/name | repos")


@dataclass(slots=True)
class AssistantRuntime:
    """Process-wide helpers shared by every request."""

    llm: LLMService
    history: ConversationHistory
    rate_limiter: ChatRateLimiter
    code_editor: CodeEditor | None = None


def build_runtime() -> AssistantRuntime:
    settings = get_settings()
    return AssistantRuntime(
        llm=LLMService(),
        history=ConversationHistory(
            max_turns=settings.conversation_history_size,
            ttl_seconds=settings.conversation_history_ttl_seconds,
        ),
        rate_limiter=ChatRateLimiter(
            max_requests=settings.chat_rate_limit_requests,
            window_seconds=settings.chat_rate_limit_window_seconds,
        ),
        code_editor=CodeEditor(),
    )


def build_github_service(session: AsyncSession, code_editor: CodeEditor | None = None) -> GithubActionService:
    return GithubActionService(
        PendingActionRepository(session),
        UserService(UserRepository(session)),
        code_editor=code_editor,
    )


def build_assistant(session: AsyncSession, runtime: AssistantRuntime) -> AssistantService:
    users = UserService(UserRepository(session))
    pending = PendingActionRepository(session)
    return AssistantService(
        users=users,
        github=GithubActionService(pending, users, code_editor=runtime.code_editor),
        reminders=ReminderService(ReminderRepository(session)),
        digest=DigestService(AutomationRepository(session)),
        llm=runtime.llm,
        history=runtime.history,
        rate_limiter=runtime.rate_limiter,
        oauth=GithubOAuthService(pending, users),
    )
