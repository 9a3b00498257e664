"""
Access gate: may the user send another message?

Two alternative policies, chosen by `access.policy` in config and never
combined:

  RemoteAccessGate  (default) the server is the only source of truth.
                    The gate relays the /api/verify-session snapshot and
                    reports usage through /api/track-message.
                    Fails closed: a failed check blocks with not_enrolled.

  LocalTrialGate    message counter + trial start kept in client storage.
                    An active/trialing Stripe subscription overrides the
                    counter. Easy to reset by wiping storage, so only
                    suitable where real enforcement is not needed.

Remote gate states:

    UNVERIFIED --init()/verify() with a session--> VERIFYING
    VERIFYING  --valid && canChat-->                ALLOWED
    VERIFYING  --anything else, incl. errors-->     BLOCKED(reason)
    ALLOWED / BLOCKED --verify()-->                 VERIFYING
"""

from __future__ import annotations

import abc
import json
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from omaa.access.policy import AccessDecision, evaluate_local_trial, paywall_reason
from omaa.client.api import OmaaApiClient
from omaa.client.storage import SESSION_ID, SUBSCRIPTION_CACHE, TRIAL_COUNT, TRIAL_START, LocalStorage
from omaa.errors import OmaaError
from omaa.models import AccessState, PaywallReason, SubscriptionStatus, parse_remaining

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GateState(str, Enum):
    UNVERIFIED = "unverified"
    VERIFYING = "verifying"
    ALLOWED = "allowed"
    BLOCKED = "blocked"


def capture_checkout_redirect(url: str, storage: LocalStorage) -> tuple[str | None, str]:
    """
    Handle the page URL Stripe redirects to after checkout.

    When it carries session_id plus status=success the session id is
    persisted. The checkout parameters are always stripped from the
    returned URL. Returns (captured session id or None, cleaned url).
    """
    parts = urlsplit(url)
    params = parse_qs(parts.query)
    session_id = (params.get("session_id") or [None])[0]
    status = (params.get("status") or [None])[0]

    captured = None
    if session_id and status == "success":
        storage.set_item(SESSION_ID, session_id)
        captured = session_id
        logger.info("Checkout completed, session captured")

    kept = {k: v for k, v in params.items() if k not in ("session_id", "status")}
    cleaned = urlunsplit(parts._replace(query=urlencode(kept, doseq=True)))
    return captured, cleaned


class AccessGate(abc.ABC):
    """Common interface the chat orchestrator talks to."""

    meters_usage: bool = False

    def __init__(self, storage: LocalStorage):
        self.storage = storage
        self.session_id: str | None = None
        self.state = GateState.UNVERIFIED
        self._access = AccessState()
        self._reason: PaywallReason | None = PaywallReason.NOT_ENROLLED
        self._initialized = False

    @property
    def access_state(self) -> AccessState:
        return self._access

    def has_session(self) -> bool:
        return bool(self.session_id)

    async def init(self, redirect_url: str | None = None) -> AccessState:
        """Pick up a session id (from a checkout redirect or storage) and verify."""
        if self._initialized:
            return self._access
        captured = None
        if redirect_url:
            captured, _ = capture_checkout_redirect(redirect_url, self.storage)
        self.session_id = captured or self.storage.get_item(SESSION_ID)
        self._initialized = True
        return await self.verify()

    def can_send(self) -> bool:
        return self.state == GateState.ALLOWED

    def paywall_reason(self) -> PaywallReason | None:
        return None if self.can_send() else self._reason

    @abc.abstractmethod
    async def verify(self) -> AccessState:
        """Re-check access and replace the snapshot wholesale."""
        ...

    @abc.abstractmethod
    async def record_message(self) -> AccessState:
        """Account for one successfully answered message."""
        ...

    def clear_session(self):
        """Forget the session (logout)."""
        self.storage.remove_item(SESSION_ID)
        self.session_id = None
        self.state = GateState.UNVERIFIED
        self._access = AccessState()
        self._reason = PaywallReason.NOT_ENROLLED
        self._initialized = False


class RemoteAccessGate(AccessGate):
    """Relays the server's verdict; never computes limits itself."""

    meters_usage = True

    def __init__(self, api: OmaaApiClient, storage: LocalStorage):
        super().__init__(storage)
        self.api = api

    def _settle(self, access: AccessState):
        self._access = access
        self._reason = paywall_reason(access)
        self.state = GateState.ALLOWED if self._reason is None else GateState.BLOCKED

    async def verify(self) -> AccessState:
        if not self.session_id:
            self.state = GateState.UNVERIFIED
            self._access = AccessState(has_session=False)
            self._reason = PaywallReason.NOT_ENROLLED
            return self._access

        self.state = GateState.VERIFYING
        try:
            data = await self.api.verify_session(self.session_id)
        except OmaaError as e:
            logger.error("Failed to verify access: %s", e)
            self._access = AccessState(has_session=True)
            self._reason = PaywallReason.NOT_ENROLLED
            self.state = GateState.BLOCKED
            return self._access

        self._settle(AccessState.from_server(data, has_session=True))
        logger.info("Access verified: %s", self.state.value)
        return self._access

    async def record_message(self) -> AccessState:
        if not self.session_id:
            return self._access
        try:
            data = await self.api.track_message(self.session_id)
        except OmaaError as e:
            # The next verify() re-syncs with the server's count.
            logger.warning("Failed to track message: %s", e)
            return self._access

        previous = self._access.messages_remaining
        remaining = parse_remaining(data.get("messagesRemaining", previous), default=previous)
        limit_reached = bool(data.get("limitReached", False))
        self._settle(replace(
            self._access,
            can_chat=self._access.can_chat and not limit_reached,
            messages_remaining=remaining,
        ))
        return self._access


class LocalTrialGate(AccessGate):
    """Counter + trial window kept client-side."""

    meters_usage = True

    def __init__(
        self,
        storage: LocalStorage,
        limit: int = 20,
        duration_days: int = 7,
        api: OmaaApiClient | None = None,
        clock: Clock = _utcnow,
    ):
        super().__init__(storage)
        self.limit = limit
        self.duration_days = duration_days
        self.api = api
        self.clock = clock
        self._snapshot: dict | None = None

    @property
    def counter(self) -> int:
        try:
            return max(0, int(self.storage.get_item(TRIAL_COUNT) or 0))
        except ValueError:
            return 0

    @property
    def trial_start(self) -> datetime:
        raw = self.storage.get_item(TRIAL_START)
        if raw:
            try:
                start = datetime.fromisoformat(raw)
                return start if start.tzinfo else start.replace(tzinfo=timezone.utc)
            except ValueError:
                logger.warning("Corrupt trial start %r, restarting trial clock", raw)
        start = self.clock()
        self.storage.set_item(TRIAL_START, start.isoformat())
        return start

    def _cached_subscription(self) -> dict | None:
        raw = self.storage.get_item(SUBSCRIPTION_CACHE)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    async def _subscription_snapshot(self) -> dict | None:
        """Remote status when a session exists; cached copy if the call fails."""
        if not self.session_id or self.api is None:
            return None
        try:
            data = await self.api.subscription_status(self.session_id)
        except OmaaError as e:
            logger.warning("Subscription check failed, using cached status: %s", e)
            return self._cached_subscription()
        self.storage.set_item(SUBSCRIPTION_CACHE, json.dumps(data))
        return data

    def _decide(self, snapshot: dict | None) -> AccessDecision:
        status = SubscriptionStatus.parse((snapshot or {}).get("status"))
        return evaluate_local_trial(
            counter=self.counter,
            limit=self.limit,
            trial_start=self.trial_start,
            duration_days=self.duration_days,
            now=self.clock(),
            subscription_status=status,
        )

    def _settle(self, snapshot: dict | None):
        decision = self._decide(snapshot)
        status = SubscriptionStatus.parse((snapshot or {}).get("status"))
        self._access = AccessState(
            has_session=self.has_session(),
            valid=True,
            can_chat=decision.allowed,
            is_paid=status == SubscriptionStatus.ACTIVE,
            is_trialing=status == SubscriptionStatus.TRIALING,
            messages_remaining=decision.messages_remaining,
            subscription_status=status,
            trial_end=self.trial_start + timedelta(days=self.duration_days),
        )
        self._reason = decision.reason
        self.state = GateState.ALLOWED if decision.allowed else GateState.BLOCKED

    def can_send(self) -> bool:
        # The trial window closes with time alone, so re-evaluate on every check.
        if self._initialized:
            self._settle(self._snapshot)
        return super().can_send()

    def paywall_reason(self) -> PaywallReason | None:
        if self._initialized:
            self._settle(self._snapshot)
        return super().paywall_reason()

    async def verify(self) -> AccessState:
        self.state = GateState.VERIFYING
        self._snapshot = await self._subscription_snapshot()
        self._settle(self._snapshot)
        return self._access

    async def record_message(self) -> AccessState:
        self.storage.set_item(TRIAL_COUNT, str(self.counter + 1))
        self._settle(self._snapshot)
        return self._access


def create_gate(cfg: dict, api: OmaaApiClient, storage: LocalStorage) -> AccessGate:
    """Build the gate selected by `access.policy`."""
    access_cfg = cfg.get("access", {})
    policy = access_cfg.get("policy", "remote")
    if policy == "local":
        return LocalTrialGate(
            storage,
            limit=int(access_cfg.get("trial_message_limit", 20)),
            duration_days=int(access_cfg.get("trial_duration_days", 7)),
            api=api,
        )
    if policy != "remote":
        logger.warning("Unknown access policy '%s', using remote", policy)
    return RemoteAccessGate(api, storage)
