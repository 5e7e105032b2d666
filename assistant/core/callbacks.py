from dataclasses import dataclass

GITHUB_CONFIRM_PREFIX = "gh_confirm_"
GITHUB_CANCEL_PREFIX = "gh_cancel_"
SNOOZE_PREFIX = "snooze_"
DONE_PREFIX = "done_"


@dataclass(slots=True, frozen=True)
class CallbackAction:
    kind: str  # "gh_confirm" | "gh_cancel" | "snooze" | "done"
    target_id: int
    minutes: int | None = None


def github_confirm_data(action_id: int) -> str:
    return f"{GITHUB_CONFIRM_PREFIX}{action_id}"


def github_cancel_data(action_id: int) -> str:
    return f"{GITHUB_CANCEL_PREFIX}{action_id}"


def snooze_data(reminder_id: int, minutes: int) -> str:
    return f"{SNOOZE_PREFIX}{reminder_id}_{minutes}"


def done_data(reminder_id: int) -> str:
    return f"{DONE_PREFIX}{reminder_id}"


def parse_callback_data(data: str) -> CallbackAction | None:
    try:
        if data.startswith(GITHUB_CONFIRM_PREFIX):
            return CallbackAction("gh_confirm", int(data[len(GITHUB_CONFIRM_PREFIX) :]))
        if data.startswith(GITHUB_CANCEL_PREFIX):
            return CallbackAction("gh_cancel", int(data[len(GITHUB_CANCEL_PREFIX) :]))
        if data.startswith(SNOOZE_PREFIX):
            reminder_id, _, minutes = data[len(SNOOZE_PREFIX) :].partition("_")
            return CallbackAction("snooze", int(reminder_id), int(minutes or "10"))
        if data.startswith(DONE_PREFIX):
            return CallbackAction("done", int(data[len(DONE_PREFIX) :]))
    except ValueError:
        return None
    return None
