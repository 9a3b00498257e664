"""
Tests for the capped conversation store.
"""

import json

import pytest

from omaa.client.conversation import ConversationStore
from omaa.client.storage import CHAT_HISTORY, LocalStorage
from omaa.models import Role


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "storage.json")


@pytest.mark.parametrize("cap,appends", [(1, 5), (3, 3), (3, 10), (20, 47)])
def test_cap_keeps_most_recent_in_order(storage, cap, appends):
    store = ConversationStore(storage, max_messages=cap)
    for i in range(appends):
        store.append(Role.USER if i % 2 == 0 else Role.ASSISTANT, f"m{i}")
        assert len(store) <= cap

    expected = [f"m{i}" for i in range(max(0, appends - cap), appends)]
    assert [m.content for m in store.messages] == expected


def test_append_persists(storage):
    store = ConversationStore(storage)
    store.append(Role.USER, "hello")
    store.append("assistant", "hi there")

    saved = json.loads(storage.get_item(CHAT_HISTORY))
    assert saved == [
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": "hi there"},
    ]
    reloaded = ConversationStore(storage)
    assert [m.content for m in reloaded.messages] == ["hello", "hi there"]


def test_load_trims_to_cap(storage):
    storage.set_item(CHAT_HISTORY, json.dumps(
        [{"role": "user", "content": str(i)} for i in range(30)]
    ))
    store = ConversationStore(storage, max_messages=20)
    assert len(store) == 20
    assert store.messages[0].content == "10"


@pytest.mark.parametrize("raw", [
    "{not json",
    '{"role": "user"}',
    '[{"role": "robot", "content": "x"}]',
    '[{"content": "missing role"}]',
])
def test_corrupt_history_is_empty(storage, raw):
    storage.set_item(CHAT_HISTORY, raw)
    assert ConversationStore(storage).messages == []


def test_clear_removes_persisted_copy(storage):
    store = ConversationStore(storage)
    store.append(Role.USER, "hello")
    store.clear()
    assert len(store) == 0
    assert storage.get_item(CHAT_HISTORY) is None


def test_pop_last_removes_trailing_entry(storage):
    store = ConversationStore(storage)
    store.append(Role.USER, "a")
    store.append(Role.ASSISTANT, "b")
    store.append(Role.USER, "c")

    popped = store.pop_last()
    assert popped.content == "c"
    assert [m.content for m in store.messages] == ["a", "b"]
    assert len(json.loads(storage.get_item(CHAT_HISTORY))) == 2


def test_pop_last_at_cap_restores_evicted(storage):
    """Rolling back an append at the cap leaves the history exactly as before."""
    store = ConversationStore(storage, max_messages=3)
    for text in ("a", "b", "c"):
        store.append(Role.USER, text)
    before = store.messages

    store.append(Role.USER, "d")
    assert [m.content for m in store.messages] == ["b", "c", "d"]

    store.pop_last()
    assert store.messages == before
    assert len(ConversationStore(storage, max_messages=3)) == 3


def test_pop_last_on_empty(storage):
    assert ConversationStore(storage).pop_last() is None


def test_messages_is_a_copy(storage):
    store = ConversationStore(storage)
    store.append(Role.USER, "a")
    store.messages.clear()
    assert len(store) == 1


def test_invalid_cap(storage):
    with pytest.raises(ValueError):
        ConversationStore(storage, max_messages=0)
