"""
Tests for the client access gates.
Covers:
  - checkout redirect capture and URL cleanup
  - RemoteAccessGate state machine, fail-closed verification, metering
  - LocalTrialGate counter, trial window and subscription override
  - create_gate policy selection
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from omaa.client.access import (
    GateState,
    LocalTrialGate,
    RemoteAccessGate,
    capture_checkout_redirect,
    create_gate,
)
from omaa.client.storage import SESSION_ID, SUBSCRIPTION_CACHE, TRIAL_COUNT, TRIAL_START, LocalStorage
from omaa.errors import NetworkError, UpstreamError
from omaa.models import UNLIMITED, PaywallReason, SubscriptionStatus

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "storage.json")


@pytest.fixture
def api():
    api = MagicMock()
    api.verify_session = AsyncMock()
    api.track_message = AsyncMock()
    api.subscription_status = AsyncMock()
    return api


def _verified(**overrides):
    data = {
        "valid": True,
        "canChat": True,
        "status": "trialing",
        "isPaid": False,
        "isTrialing": True,
        "messagesUsed": 3,
        "messagesRemaining": 17,
        "trialEnd": "2025-06-08T12:00:00+00:00",
    }
    data.update(overrides)
    return data


# ── Checkout redirect ────────────────────────────────────────────────────────

def test_capture_success_redirect(storage):
    sid, url = capture_checkout_redirect(
        "https://omaa.app/chat?session_id=cs_test_1&status=success&ref=mail", storage,
    )
    assert sid == "cs_test_1"
    assert storage.get_item(SESSION_ID) == "cs_test_1"
    assert url == "https://omaa.app/chat?ref=mail"


def test_cancelled_redirect_is_stripped_not_captured(storage):
    sid, url = capture_checkout_redirect("https://omaa.app/chat?status=cancelled", storage)
    assert sid is None
    assert storage.get_item(SESSION_ID) is None
    assert url == "https://omaa.app/chat"


def test_session_without_success_is_ignored(storage):
    sid, url = capture_checkout_redirect("https://omaa.app/chat?session_id=cs_x", storage)
    assert sid is None
    assert url == "https://omaa.app/chat"


# ── Remote gate ──────────────────────────────────────────────────────────────

class TestRemoteAccessGate:
    @pytest.mark.asyncio
    async def test_no_session_stays_unverified(self, api, storage):
        gate = RemoteAccessGate(api, storage)
        await gate.init()
        assert gate.state == GateState.UNVERIFIED
        assert not gate.can_send()
        assert gate.paywall_reason() == PaywallReason.NOT_ENROLLED
        api.verify_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_valid_session_allowed(self, api, storage):
        storage.set_item(SESSION_ID, "cs_1")
        api.verify_session.return_value = _verified()
        gate = RemoteAccessGate(api, storage)

        state = await gate.init()
        api.verify_session.assert_awaited_once_with("cs_1")
        assert gate.state == GateState.ALLOWED
        assert gate.can_send()
        assert gate.paywall_reason() is None
        assert state.messages_remaining == 17
        assert state.is_trialing

    @pytest.mark.asyncio
    async def test_invalid_session_blocks_not_enrolled(self, api, storage):
        storage.set_item(SESSION_ID, "cs_1")
        api.verify_session.return_value = {"valid": False, "canChat": False, "status": "none"}
        gate = RemoteAccessGate(api, storage)

        await gate.init()
        assert gate.state == GateState.BLOCKED
        assert gate.paywall_reason() == PaywallReason.NOT_ENROLLED

    @pytest.mark.asyncio
    async def test_network_failure_fails_closed(self, api, storage):
        storage.set_item(SESSION_ID, "cs_1")
        api.verify_session.side_effect = NetworkError("connection refused")
        gate = RemoteAccessGate(api, storage)

        await gate.init()
        assert gate.state == GateState.BLOCKED
        assert not gate.can_send()
        assert gate.paywall_reason() == PaywallReason.NOT_ENROLLED

    @pytest.mark.asyncio
    async def test_ended_subscription_reason(self, api, storage):
        storage.set_item(SESSION_ID, "cs_1")
        api.verify_session.return_value = _verified(
            canChat=False, status="canceled", isTrialing=False, messagesRemaining=0,
        )
        gate = RemoteAccessGate(api, storage)
        await gate.init()
        assert gate.paywall_reason() == PaywallReason.SUBSCRIPTION_ENDED

    @pytest.mark.asyncio
    async def test_redirect_session_wins(self, api, storage):
        storage.set_item(SESSION_ID, "cs_old")
        api.verify_session.return_value = _verified()
        gate = RemoteAccessGate(api, storage)

        await gate.init("https://omaa.app/chat?session_id=cs_new&status=success")
        api.verify_session.assert_awaited_once_with("cs_new")
        assert storage.get_item(SESSION_ID) == "cs_new"

    @pytest.mark.asyncio
    async def test_recheck_replaces_snapshot(self, api, storage):
        storage.set_item(SESSION_ID, "cs_1")
        api.verify_session.side_effect = [NetworkError("down"), _verified()]
        gate = RemoteAccessGate(api, storage)

        await gate.init()
        assert gate.state == GateState.BLOCKED
        await gate.verify()
        assert gate.state == GateState.ALLOWED

    @pytest.mark.asyncio
    async def test_track_message_limit_reached(self, api, storage):
        storage.set_item(SESSION_ID, "cs_1")
        api.verify_session.return_value = _verified(messagesRemaining=1)
        api.track_message.return_value = {
            "success": True, "messagesUsed": 20, "messagesRemaining": 0, "limitReached": True,
        }
        gate = RemoteAccessGate(api, storage)
        await gate.init()

        state = await gate.record_message()
        api.track_message.assert_awaited_once_with("cs_1")
        assert state.messages_remaining == 0
        assert gate.state == GateState.BLOCKED
        assert gate.paywall_reason() == PaywallReason.MESSAGE_LIMIT

    @pytest.mark.asyncio
    async def test_track_failure_keeps_state(self, api, storage):
        storage.set_item(SESSION_ID, "cs_1")
        api.verify_session.return_value = _verified()
        api.track_message.side_effect = UpstreamError("boom", status_code=500)
        gate = RemoteAccessGate(api, storage)
        await gate.init()

        state = await gate.record_message()
        assert state.messages_remaining == 17
        assert gate.can_send()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [None, "lots", [3]])
    async def test_track_bad_remaining_keeps_count(self, api, storage, value):
        storage.set_item(SESSION_ID, "cs_1")
        api.verify_session.return_value = _verified()
        api.track_message.return_value = {
            "success": True, "messagesRemaining": value, "limitReached": False,
        }
        gate = RemoteAccessGate(api, storage)
        await gate.init()

        state = await gate.record_message()
        assert state.messages_remaining == 17
        assert gate.can_send()

    @pytest.mark.asyncio
    async def test_clear_session(self, api, storage):
        storage.set_item(SESSION_ID, "cs_1")
        api.verify_session.return_value = _verified()
        gate = RemoteAccessGate(api, storage)
        await gate.init()

        gate.clear_session()
        assert storage.get_item(SESSION_ID) is None
        assert gate.state == GateState.UNVERIFIED
        assert not gate.can_send()


# ── Local trial gate ─────────────────────────────────────────────────────────

class TestLocalTrialGate:
    def _gate(self, storage, api=None, now=NOW):
        return LocalTrialGate(storage, limit=20, duration_days=7, api=api, clock=lambda: now)

    @pytest.mark.asyncio
    async def test_counter_19_then_limit(self, storage):
        storage.set_item(TRIAL_COUNT, "19")
        gate = self._gate(storage)

        await gate.init()
        assert gate.can_send()
        assert gate.access_state.messages_remaining == 1

        await gate.record_message()
        assert gate.counter == 20
        assert not gate.can_send()
        assert gate.paywall_reason() == PaywallReason.MESSAGE_LIMIT

    @pytest.mark.asyncio
    async def test_trial_start_recorded_on_first_use(self, storage):
        gate = self._gate(storage)
        await gate.init()
        assert storage.get_item(TRIAL_START) == NOW.isoformat()
        assert gate.access_state.trial_end == NOW + timedelta(days=7)

    @pytest.mark.asyncio
    async def test_expired_trial(self, storage):
        storage.set_item(TRIAL_START, (NOW - timedelta(days=8)).isoformat())
        gate = self._gate(storage)
        await gate.init()
        assert not gate.can_send()
        assert gate.paywall_reason() == PaywallReason.TRIAL_EXPIRED

    @pytest.mark.asyncio
    async def test_corrupt_values_reset(self, storage):
        storage.set_item(TRIAL_COUNT, "lots")
        storage.set_item(TRIAL_START, "yesterday")
        gate = self._gate(storage)
        await gate.init()
        assert gate.counter == 0
        assert gate.can_send()

    @pytest.mark.asyncio
    async def test_active_subscription_overrides_counter(self, storage, api):
        storage.set_item(SESSION_ID, "cs_1")
        storage.set_item(TRIAL_COUNT, "50")
        api.subscription_status.return_value = {"status": "active", "canChat": True}
        gate = self._gate(storage, api)

        await gate.init()
        assert gate.can_send()
        assert gate.access_state.is_paid
        assert gate.access_state.messages_remaining == UNLIMITED
        assert json.loads(storage.get_item(SUBSCRIPTION_CACHE))["status"] == "active"

        await gate.record_message()
        assert gate.can_send()

    @pytest.mark.asyncio
    async def test_cached_status_used_when_offline(self, storage, api):
        storage.set_item(SESSION_ID, "cs_1")
        storage.set_item(TRIAL_COUNT, "50")
        storage.set_item(SUBSCRIPTION_CACHE, json.dumps({"status": "trialing"}))
        api.subscription_status.side_effect = NetworkError("offline")
        gate = self._gate(storage, api)

        await gate.init()
        assert gate.can_send()
        assert gate.access_state.subscription_status == SubscriptionStatus.TRIALING

    @pytest.mark.asyncio
    async def test_no_session_skips_remote_check(self, storage, api):
        gate = self._gate(storage, api)
        await gate.init()
        api.subscription_status.assert_not_called()
        assert gate.can_send()

    @pytest.mark.asyncio
    async def test_window_closes_while_running(self, storage):
        now = [NOW]
        gate = LocalTrialGate(storage, limit=20, duration_days=7, clock=lambda: now[0])
        await gate.init()
        assert gate.can_send()

        now[0] = NOW + timedelta(days=8)
        assert not gate.can_send()
        assert gate.paywall_reason() == PaywallReason.TRIAL_EXPIRED
        assert gate.state == GateState.BLOCKED


# ── Policy selection ─────────────────────────────────────────────────────────

def test_create_gate_default_is_remote(storage, api):
    assert isinstance(create_gate({}, api, storage), RemoteAccessGate)


def test_create_gate_local(storage, api):
    gate = create_gate(
        {"access": {"policy": "local", "trial_message_limit": 5, "trial_duration_days": 3}},
        api, storage,
    )
    assert isinstance(gate, LocalTrialGate)
    assert gate.limit == 5
    assert gate.duration_days == 3
