"""
Data models shared by server and client.
These define the shape of data flowing between the chat client, the
OMaa server and the upstream providers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

UNLIMITED = "unlimited"


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class SubscriptionStatus(str, Enum):
    TRIALING = "trialing"
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    NONE = "none"

    @classmethod
    def parse(cls, value: str | None) -> "SubscriptionStatus":
        """Map a Stripe subscription status onto the statuses we act on."""
        if not value:
            return cls.NONE
        try:
            return cls(value)
        except ValueError:
            pass
        if value == "unpaid":
            return cls.PAST_DUE
        if value == "incomplete_expired":
            return cls.CANCELED
        return cls.NONE


class PaywallReason(str, Enum):
    NOT_ENROLLED = "not_enrolled"
    MESSAGE_LIMIT = "message_limit"
    SUBSCRIPTION_ENDED = "subscription_ended"
    TRIAL_EXPIRED = "trial_expired"


@dataclass(frozen=True)
class Message:
    """A single role-tagged chat message."""
    role: Role
    content: str

    def to_dict(self) -> dict:
        """Export in the {role, content} wire shape every provider accepts."""
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        return cls(role=Role(data["role"]), content=str(data["content"]))


def _parse_timestamp(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_remaining(value, default: int | str = 0) -> int | str:
    """Normalize a messagesRemaining value: UNLIMITED or a count >= 0, else `default`."""
    if value == UNLIMITED:
        return value
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class AccessState:
    """
    Snapshot of what the current user may do.
    Always rebuilt wholesale from a verification call, never patched.
    """
    has_session: bool = False
    valid: bool = False
    can_chat: bool = False
    is_paid: bool = False
    is_trialing: bool = False
    messages_remaining: int | str = 0
    subscription_status: SubscriptionStatus = SubscriptionStatus.NONE
    trial_end: datetime | None = None

    @classmethod
    def from_server(cls, data: dict, has_session: bool = True) -> "AccessState":
        """Build from a /api/verify-session (or subscription-status) payload."""
        remaining = parse_remaining(
            data.get("messagesRemaining", UNLIMITED if data.get("isPaid") else 0),
        )
        return cls(
            has_session=has_session,
            valid=bool(data.get("valid", False)),
            can_chat=bool(data.get("canChat", False)),
            is_paid=bool(data.get("isPaid", False)),
            is_trialing=bool(data.get("isTrialing", False)),
            messages_remaining=remaining,
            subscription_status=SubscriptionStatus.parse(data.get("status")),
            trial_end=_parse_timestamp(data.get("trialEnd")),
        )

    def to_dict(self) -> dict:
        """Serialize in the server's camelCase shape (used for the local cache)."""
        return {
            "valid": self.valid,
            "canChat": self.can_chat,
            "isPaid": self.is_paid,
            "isTrialing": self.is_trialing,
            "messagesRemaining": self.messages_remaining,
            "status": self.subscription_status.value,
            "trialEnd": self.trial_end.isoformat() if self.trial_end else None,
        }
