import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from assistant.core.settings import get_settings
from assistant.db.session import get_session
from assistant.repositories.pending_action_repository import PendingActionRepository
from assistant.repositories.reminder_repository import ReminderRepository
from assistant.repositories.user_repository import UserRepository
from assistant.schemas.api import MessageResponse, PendingActionRequest, ReminderDoneRequest, SnoozeRequest
from assistant.services.assistant import build_github_service
from assistant.services.github_oauth import GithubOAuthService, OAuthError
from assistant.services.github_service import GithubActionService
from assistant.services.reminder_service import ReminderError, ReminderService
from assistant.services.user_service import UserService

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


def _extract_update_timestamp(update: dict) -> int | None:
    for key in ("message", "edited_message"):
        payload = update.get(key)
        if isinstance(payload, dict):
            ts = payload.get("date")
            if isinstance(ts, int):
                return ts
    return None


def get_github_service(session: AsyncSession = Depends(get_session)) -> GithubActionService:
    return build_github_service(session)


def get_oauth_service(session: AsyncSession = Depends(get_session)) -> GithubOAuthService:
    return GithubOAuthService(PendingActionRepository(session), UserService(UserRepository(session)))


def get_reminder_service(session: AsyncSession = Depends(get_session)) -> ReminderService:
    return ReminderService(ReminderRepository(session))


@router.get("/healthz")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post(settings.telegram_webhook_path)
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
) -> dict[str, bool]:
    if x_telegram_bot_api_secret_token != settings.telegram_webhook_secret:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")

    dispatcher = request.app.state.dispatcher
    bot = request.app.state.bot
    if dispatcher is None or bot is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Telegram runtime is disabled due to invalid bot token",
        )
    update = await request.json()
    ts = _extract_update_timestamp(update)
    if ts is not None:
        age = int(datetime.now(timezone.utc).timestamp()) - ts
        if age > settings.webhook_max_update_age_seconds:
            logger.info("Stale update skipped: age_seconds=%s", age)
            return {"ok": True}
    await dispatcher.feed_raw_update(bot=bot, update=update)
    return {"ok": True}


@router.post("/github/confirm", response_model=MessageResponse)
async def confirm_pending_action(
    body: PendingActionRequest,
    service: GithubActionService = Depends(get_github_service),
) -> MessageResponse:
    reply = await service.confirm(body.user_id, body.action_id)
    return MessageResponse(message=reply.text)


@router.post("/github/cancel", response_model=MessageResponse)
async def cancel_pending_action(
    body: PendingActionRequest,
    service: GithubActionService = Depends(get_github_service),
) -> MessageResponse:
    reply = await service.cancel(body.user_id, body.action_id)
    return MessageResponse(message=reply.text)


@router.get("/github/oauth/start")
async def github_oauth_start(
    user_id: str,
    service: GithubOAuthService = Depends(get_oauth_service),
) -> RedirectResponse:
    if not service.configured:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="GitHub OAuth is not configured")
    url = await service.start(user_id)
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.get("/github/oauth/callback", response_class=HTMLResponse)
async def github_oauth_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    service: GithubOAuthService = Depends(get_oauth_service),
) -> HTMLResponse:
    if not code or not state:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing code or state")
    try:
        user_id = await service.complete(code, state)
    except OAuthError as exc:
        logger.info("GitHub OAuth callback rejected: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    messenger = getattr(request.app.state, "messenger", None)
    if messenger is not None:
        try:
            await messenger.send_message(user_id, "✅ GitHub connected. Set a default repo with /github repo owner/name")
        except Exception:
            logger.exception("Failed to notify user about GitHub connection: user_id=%s", user_id)
    return HTMLResponse("<p>GitHub connected. You can return to Telegram.</p>")


@router.post("/reminders/snooze")
async def snooze_reminder(
    body: SnoozeRequest,
    service: ReminderService = Depends(get_reminder_service),
) -> dict:
    try:
        reminder = await service.snooze(body.user_id, body.reminder_id, body.minutes)
    except ReminderError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if reminder is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reminder not found")
    return {"ok": True, "remind_at": reminder.remind_at.isoformat()}


@router.post("/reminders/done")
async def reminder_done(
    body: ReminderDoneRequest,
    service: ReminderService = Depends(get_reminder_service),
) -> dict[str, bool]:
    if not await service.mark_done(body.user_id, body.reminder_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reminder not found")
    return {"ok": True}
