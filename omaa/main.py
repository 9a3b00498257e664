"""
FastAPI application — the OMaa server.
Keeps provider API keys server-side and proxies chat to OpenAI / Anthropic /
DeepSeek, and fronts Stripe for checkout, subscription checks and
trial usage metering.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse

from omaa import __version__
from omaa.access.policy import evaluate_subscription
from omaa.config import get_config, setup_logging
from omaa.errors import OmaaError
from omaa.models import Message, SubscriptionStatus
from omaa.payments.stripe_gateway import StripeGateway
from omaa.prompts import SYSTEM_PROMPT
from omaa.providers import ADAPTERS, adapter_from_config, split_system
from omaa.providers.registry import configured_providers

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Globals (set in lifespan)
# ---------------------------------------------------------------------------
gateway: StripeGateway | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    global gateway

    cfg = get_config()
    setup_logging(cfg)

    gateway = StripeGateway.from_config(cfg)

    server_cfg = cfg.get("server", {})
    logger.info(
        "OMaa server started — listening on %s:%s",
        server_cfg.get("host", "0.0.0.0"), server_cfg.get("port", 3000),
    )
    for provider, ok in configured_providers(cfg).items():
        logger.info("%s configured: %s", provider, ok)
    logger.info("Stripe: %s", "enabled" if gateway else "disabled")
    logger.info("Trial message limit: %s", _trial_limit(cfg) or "unlimited")

    yield

    logger.info("OMaa server shutting down")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="OMaa",
    description="AI parenting companion — chat proxy and subscription gate",
    version=__version__,
    lifespan=lifespan,
)


def _trial_limit(cfg: dict) -> int | None:
    limit = cfg.get("access", {}).get("trial_message_limit", 20)
    return int(limit) if limit else None


def _system_prompt(cfg: dict) -> str:
    return cfg.get("chat", {}).get("system_prompt") or SYSTEM_PROMPT


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

@app.post("/api/chat")
async def chat(request: Request):
    """
    Proxy one chat turn. Body: {messages, provider}.
    A system entry in `messages` becomes the provider's system prompt;
    without one the configured OMaa prompt is used.
    """
    cfg = get_config()
    body = await _json_body(request)
    messages = body.get("messages")
    provider = body.get("provider") or cfg.get("chat", {}).get("default_provider", "openai")

    if not isinstance(messages, list):
        return JSONResponse({"error": "Messages array is required"}, status_code=400)
    if not isinstance(provider, str) or provider not in ADAPTERS:
        return JSONResponse({"error": "Invalid provider"}, status_code=400)

    try:
        parsed = [Message.from_dict(m) for m in messages]
    except (KeyError, ValueError, TypeError):
        return JSONResponse({"error": "Invalid message format"}, status_code=400)

    system, history = split_system(parsed)
    try:
        adapter = adapter_from_config(provider, cfg)
        reply = await adapter.complete(history, system_prompt=system or _system_prompt(cfg))
    except OmaaError as e:
        logger.error("API Error: %s", e)
        return JSONResponse({"error": str(e) or "Failed to get AI response"}, status_code=500)

    return JSONResponse({"content": reply.content, "provider": reply.provider})


@app.get("/api/health")
async def health():
    """Health check: which providers and whether Stripe are configured."""
    return JSONResponse({
        "status": "ok",
        "providers": configured_providers(get_config()),
        "stripe": gateway is not None,
    })


# ---------------------------------------------------------------------------
# Stripe
# ---------------------------------------------------------------------------

@app.post("/api/create-checkout-session")
async def create_checkout_session(request: Request):
    """Create a Stripe-hosted checkout page. Returns {sessionId, url}."""
    if gateway is None:
        return JSONResponse({"error": "Stripe not configured"}, status_code=500)

    body = await _json_body(request)
    plan = body.get("plan") or "monthly"
    base_url = get_config().get("server", {}).get("base_url") or str(request.base_url)

    try:
        data = await run_in_threadpool(gateway.create_checkout_session, plan, base_url)
    except OmaaError as e:
        return JSONResponse({"error": str(e)}, status_code=500)
    return JSONResponse(data)


@app.get("/api/subscription-status")
async def subscription_status(session_id: str | None = None):
    """Raw subscription status for a checkout session."""
    if gateway is None:
        return JSONResponse({"status": "no_stripe", "canChat": True})
    if not session_id:
        return JSONResponse({"status": "no_subscription", "canChat": True})

    try:
        sub = await run_in_threadpool(gateway.get_subscription, session_id)
    except OmaaError as e:
        logger.error("Subscription status error: %s", e)
        return JSONResponse({"status": "error", "canChat": False, "error": str(e)})

    if sub is None:
        return JSONResponse({"status": "no_subscription", "canChat": True})

    status = SubscriptionStatus.parse(sub.status)
    return JSONResponse({
        "status": sub.status,
        "canChat": status in (SubscriptionStatus.TRIALING, SubscriptionStatus.ACTIVE),
        "trialEnd": sub.trial_end_iso,
        "currentPeriodEnd": sub.current_period_end_iso,
        "subscriptionId": sub.id,
    })


def _not_valid(status: str, error: str) -> JSONResponse:
    return JSONResponse({
        "valid": False,
        "canChat": False,
        "status": status,
        "isPaid": False,
        "isTrialing": False,
        "messagesRemaining": 0,
        "error": error,
    })


@app.get("/api/verify-session")
async def verify_session(session_id: str | None = None):
    """
    Authoritative access check for a session id.
    The client relays this snapshot and never computes limits itself.
    """
    if gateway is None:
        return _not_valid("no_stripe", "Stripe not configured")
    if not session_id:
        return _not_valid("none", "No session - user must enroll first")

    try:
        sub = await run_in_threadpool(gateway.get_subscription, session_id)
    except OmaaError as e:
        return _not_valid("error", str(e))
    if sub is None:
        return _not_valid("no_subscription", "No subscription for this session")

    status = SubscriptionStatus.parse(sub.status)
    decision = evaluate_subscription(status, sub.messages_used, _trial_limit(get_config()))
    return JSONResponse({
        "valid": True,
        "canChat": decision.allowed,
        "status": sub.status,
        "isPaid": status == SubscriptionStatus.ACTIVE,
        "isTrialing": status == SubscriptionStatus.TRIALING,
        "messagesUsed": sub.messages_used,
        "messagesRemaining": decision.messages_remaining,
        "trialEnd": sub.trial_end_iso,
        "subscriptionId": sub.id,
    })


@app.post("/api/track-message")
async def track_message(request: Request):
    """Record one consumed message against a trialing subscription."""
    if gateway is None:
        return JSONResponse({"success": False, "error": "Stripe not configured"}, status_code=500)

    body = await _json_body(request)
    session_id = body.get("session_id")
    if not session_id:
        return JSONResponse({"success": False, "error": "session_id is required"}, status_code=400)

    try:
        sub = await run_in_threadpool(gateway.get_subscription, session_id)
        if sub is None:
            return JSONResponse(
                {"success": False, "error": "No subscription for this session"}, status_code=404,
            )
        status = SubscriptionStatus.parse(sub.status)
        limit = _trial_limit(get_config())
        if status == SubscriptionStatus.TRIALING and limit:
            await run_in_threadpool(gateway.record_message, sub)
    except OmaaError as e:
        logger.error("Track message error: %s", e)
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)

    decision = evaluate_subscription(status, sub.messages_used, limit)
    return JSONResponse({
        "success": status in (SubscriptionStatus.TRIALING, SubscriptionStatus.ACTIVE),
        "messagesUsed": sub.messages_used,
        "messagesRemaining": decision.messages_remaining,
        "limitReached": not decision.allowed,
    })


@app.post("/api/webhook/stripe")
async def stripe_webhook(request: Request):
    """Verify and acknowledge a Stripe webhook event."""
    if gateway is None:
        return JSONResponse({"error": "Stripe not configured"}, status_code=400)

    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        event = gateway.construct_event(payload, signature)
    except ValueError as e:
        logger.error("Webhook signature verification failed: %s", e)
        return PlainTextResponse(f"Webhook Error: {e}", status_code=400)

    gateway.handle_event(event)
    return JSONResponse({"received": True})
