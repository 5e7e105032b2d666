from datetime import datetime, timedelta, timezone

from assistant.services.conversation_history import ConversationHistory

NOW = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)


def test_history_keeps_only_the_latest_turns() -> None:
    history = ConversationHistory(max_turns=3, ttl_seconds=600)
    for idx in range(5):
        history.append("u1", "user", f"m{idx}", now=NOW)

    assert [turn.content for turn in history.recent("u1", now=NOW)] == ["m2", "m3", "m4"]
    assert history.recent("u2", now=NOW) == []


def test_idle_history_expires() -> None:
    history = ConversationHistory(max_turns=3, ttl_seconds=600)
    history.append("u1", "user", "hello", now=NOW)

    assert len(history.recent("u1", now=NOW + timedelta(seconds=599))) == 1
    assert history.recent("u1", now=NOW + timedelta(seconds=601)) == []

    history.append("u1", "user", "again", now=NOW + timedelta(seconds=700))
    assert [turn.content for turn in history.recent("u1", now=NOW + timedelta(seconds=700))] == ["again"]


def test_idle_users_are_evicted_when_others_write() -> None:
    history = ConversationHistory(max_turns=3, ttl_seconds=60)
    history.append("idle", "user", "hello", now=NOW)

    for idx in range(50):
        history.append(f"u{idx}", "user", "hi", now=NOW + timedelta(hours=1))

    assert len(history) == 50
    assert history.recent("idle", now=NOW + timedelta(hours=1)) == []
