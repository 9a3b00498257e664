"""
Access policy math.

Pure functions, no I/O. The server uses evaluate_subscription() to meter
trialing subscriptions; the client's local policy uses evaluate_local_trial();
the client's remote policy only maps a server snapshot to a paywall reason.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from omaa.models import UNLIMITED, AccessState, PaywallReason, SubscriptionStatus

_ENDED = (SubscriptionStatus.CANCELED, SubscriptionStatus.PAST_DUE)
_ENTITLED = (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: PaywallReason | None = None
    messages_remaining: int | str = UNLIMITED


def trial_window_open(trial_start: datetime, duration_days: int, now: datetime) -> bool:
    return now < trial_start + timedelta(days=duration_days)


def evaluate_local_trial(
    counter: int,
    limit: int,
    trial_start: datetime,
    duration_days: int,
    now: datetime,
    subscription_status: SubscriptionStatus | None = None,
) -> AccessDecision:
    """
    Client-side trial: allowed while counter < limit and the window is open.
    An active or trialing subscription overrides the counter entirely.
    """
    if subscription_status in _ENTITLED:
        return AccessDecision(allowed=True)

    remaining = max(0, limit - counter)
    if counter >= limit:
        return AccessDecision(False, PaywallReason.MESSAGE_LIMIT, 0)
    if not trial_window_open(trial_start, duration_days, now):
        return AccessDecision(False, PaywallReason.TRIAL_EXPIRED, remaining)
    return AccessDecision(True, None, remaining)


def evaluate_subscription(
    status: SubscriptionStatus,
    messages_used: int = 0,
    trial_message_limit: int | None = None,
) -> AccessDecision:
    """
    Server-side decision for a Stripe subscription.
    Active is unlimited; trialing is metered when a trial limit is set.
    """
    if status == SubscriptionStatus.ACTIVE:
        return AccessDecision(allowed=True)

    if status == SubscriptionStatus.TRIALING:
        if not trial_message_limit:
            return AccessDecision(allowed=True)
        remaining = max(0, trial_message_limit - messages_used)
        if remaining == 0:
            return AccessDecision(False, PaywallReason.MESSAGE_LIMIT, 0)
        return AccessDecision(True, None, remaining)

    if status in _ENDED:
        return AccessDecision(False, PaywallReason.SUBSCRIPTION_ENDED, 0)

    return AccessDecision(False, PaywallReason.NOT_ENROLLED, 0)


def paywall_reason(state: AccessState | None) -> PaywallReason | None:
    """Why a server snapshot blocks chat, or None when it allows it."""
    if state is None or not state.valid:
        return PaywallReason.NOT_ENROLLED
    if state.subscription_status in _ENDED:
        return PaywallReason.SUBSCRIPTION_ENDED
    if not state.can_chat:
        return PaywallReason.MESSAGE_LIMIT
    return None
