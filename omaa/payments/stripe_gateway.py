"""
Stripe gateway — the only server-side persistence OMaa has.

Wraps the Stripe SDK for:
  - subscription-mode checkout sessions (with a free trial period)
  - checkout session → subscription lookups
  - trial usage metering, stored in the subscription's metadata
  - webhook signature verification

SDK errors are translated into UpstreamError so callers never import stripe.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import stripe

from omaa.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

METER_KEY = "omaa_messages_used"

HANDLED_EVENTS = (
    "checkout.session.completed",
    "customer.subscription.updated",
    "customer.subscription.deleted",
    "invoice.payment_succeeded",
    "invoice.payment_failed",
)


def _iso(epoch: int | None) -> str | None:
    if not epoch:
        return None
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat()


@dataclass
class SubscriptionInfo:
    """The subset of a Stripe subscription the access checks need."""
    id: str
    status: str
    trial_end: int | None = None
    current_period_end: int | None = None
    messages_used: int = 0

    @property
    def trial_end_iso(self) -> str | None:
        return _iso(self.trial_end)

    @property
    def current_period_end_iso(self) -> str | None:
        return _iso(self.current_period_end)

    @classmethod
    def from_stripe(cls, sub) -> "SubscriptionInfo":
        metadata = sub.get("metadata") or {}
        try:
            used = int(metadata.get(METER_KEY, 0) or 0)
        except (TypeError, ValueError):
            used = 0
        # Newer API versions moved current_period_end onto the subscription items
        period_end = sub.get("current_period_end")
        if period_end is None:
            items = (sub.get("items") or {}).get("data") or []
            if items:
                period_end = items[0].get("current_period_end")
        return cls(
            id=sub["id"],
            status=sub.get("status") or "",
            trial_end=sub.get("trial_end"),
            current_period_end=period_end,
            messages_used=used,
        )


class StripeGateway:
    """Thin, synchronous wrapper around a StripeClient."""

    def __init__(
        self,
        secret_key: str,
        price_id: str = "",
        annual_price_id: str = "",
        trial_period_days: int = 7,
        webhook_secret: str = "",
        client=None,
    ):
        if not secret_key and client is None:
            raise ConfigurationError("Stripe not configured")
        self.price_id = price_id
        self.annual_price_id = annual_price_id
        self.trial_period_days = trial_period_days
        self.webhook_secret = webhook_secret
        self.client = client or stripe.StripeClient(secret_key)

    @classmethod
    def from_config(cls, cfg: dict) -> "StripeGateway | None":
        """Build from the `stripe` config block; None when no secret key is set."""
        s_cfg = cfg.get("stripe", {}) or {}
        if not s_cfg.get("secret_key"):
            return None
        return cls(
            secret_key=s_cfg["secret_key"],
            price_id=s_cfg.get("price_id", ""),
            annual_price_id=s_cfg.get("annual_price_id", ""),
            trial_period_days=int(s_cfg.get("trial_period_days", 7)),
            webhook_secret=s_cfg.get("webhook_secret", ""),
        )

    def _price_for(self, plan: str) -> str:
        if plan == "annual":
            price = self.annual_price_id
        elif plan == "monthly":
            price = self.price_id
        else:
            raise ConfigurationError(f"Unknown plan: {plan}")
        if not price:
            raise ConfigurationError(f"No Stripe price configured for the {plan} plan")
        return price

    def create_checkout_session(self, plan: str, base_url: str) -> dict:
        """Create a hosted checkout page. Returns {sessionId, url}."""
        base_url = base_url.rstrip("/")
        params = {
            "mode": "subscription",
            "payment_method_types": ["card"],
            "line_items": [{"price": self._price_for(plan), "quantity": 1}],
            "subscription_data": {"trial_period_days": self.trial_period_days},
            "success_url": f"{base_url}/chat?session_id={{CHECKOUT_SESSION_ID}}&status=success",
            "cancel_url": f"{base_url}/chat?status=cancelled",
        }
        try:
            session = self.client.checkout.sessions.create(params=params)
        except stripe.StripeError as e:
            logger.error("Checkout session error: %s", e)
            raise UpstreamError(e.user_message or str(e), status_code=e.http_status) from e
        logger.info("Checkout session created: %s (%s plan)", session["id"], plan)
        return {"sessionId": session["id"], "url": session.get("url")}

    def get_subscription(self, session_id: str) -> SubscriptionInfo | None:
        """Resolve a checkout session to its subscription. None if it has none."""
        try:
            session = self.client.checkout.sessions.retrieve(session_id)
            sub_ref = session.get("subscription")
            if not sub_ref:
                return None
            if isinstance(sub_ref, str):
                sub = self.client.subscriptions.retrieve(sub_ref)
            else:
                sub = sub_ref
        except stripe.StripeError as e:
            logger.warning("Subscription lookup failed for session %s: %s", session_id, e)
            raise UpstreamError(e.user_message or str(e), status_code=e.http_status) from e
        return SubscriptionInfo.from_stripe(sub)

    def record_message(self, sub: SubscriptionInfo) -> int:
        """Increment the usage counter on the subscription. Returns the new count."""
        used = sub.messages_used + 1
        try:
            self.client.subscriptions.update(
                sub.id, params={"metadata": {METER_KEY: str(used)}},
            )
        except stripe.StripeError as e:
            logger.warning("Failed to record message on %s: %s", sub.id, e)
            raise UpstreamError(e.user_message or str(e), status_code=e.http_status) from e
        sub.messages_used = used
        return used

    def construct_event(self, payload: bytes, signature: str | None) -> dict:
        """
        Verify and decode a webhook payload.
        Without a webhook secret the payload is trusted as plain JSON.
        Raises ValueError on a bad payload or signature.
        """
        if self.webhook_secret:
            try:
                return stripe.Webhook.construct_event(payload, signature or "", self.webhook_secret)
            except stripe.SignatureVerificationError as e:
                raise ValueError(str(e)) from e
        event = json.loads(payload)
        if not isinstance(event, dict):
            raise ValueError("Webhook payload is not an object")
        return event

    def handle_event(self, event) -> str:
        """Log a webhook event. Returns its type."""
        event_type = event.get("type", "")
        obj = (event.get("data") or {}).get("object") or {}
        obj_id = obj.get("id", "")
        if event_type == "customer.subscription.updated":
            logger.info("Subscription updated: %s %s", obj_id, obj.get("status"))
        elif event_type in HANDLED_EVENTS:
            logger.info("Stripe event %s: %s", event_type, obj_id)
        else:
            logger.info("Unhandled event type: %s", event_type)
        return event_type
