#!/usr/bin/env python3
"""
OMaa CLI — the AI parenting companion from a terminal.

Every command has a short name and a standard alias:

    COMMAND         ALIASES         WHAT IT DOES
    -------         -------         ----------------------------------
    serve           start, up       Start the OMaa server
    chat            talk            Interactive chat session
    health          ping            Ping a running server
    subscribe       checkout        Open Stripe checkout in the browser
    status          info            Provider, history and access at a glance
    clear           reset           Clear the stored chat history
    providers       models          List providers and their models
    key             apikey          Store a provider API key (direct mode)
    logout          signout         Forget the stored subscription session
"""

import argparse
import asyncio
import sys

from omaa import __version__

BANNER = r"""
    ╭──────────────────────────────────────────╮
    │                                          │
    │    ██████  ███    ███  █████   █████     │
    │   ██    ██ ████  ████ ██   ██ ██   ██    │
    │   ██    ██ ██ ████ ██ ███████ ███████    │
    │   ██    ██ ██  ██  ██ ██   ██ ██   ██    │
    │    ██████  ██      ██ ██   ██ ██   ██    │
    │                                          │
    │   Your AI parenting companion   v""" + __version__ + r"""    │
    │                                          │
    ╰──────────────────────────────────────────╯
"""

CHAT_HELP = """  Commands:
    /provider <id> [model]   switch provider (and model)
    /subscribe [annual]      start the free trial / subscription
    /recheck                 re-verify access after checkout
    /status                  show access status
    /clear                   clear chat history
    /quit                    leave
"""


def _client_parts(args):
    """Config, storage and API client for client-side commands."""
    from omaa.client.api import OmaaApiClient
    from omaa.client.orchestrator import open_storage
    from omaa.config import get_config, setup_logging

    cfg = get_config()
    setup_logging(cfg)
    url = getattr(args, "url", None) or cfg.get("client", {}).get("server_url", "http://localhost:3000")
    timeout = cfg.get("chat", {}).get("timeout", 120)
    return cfg, open_storage(cfg), OmaaApiClient(url, timeout=timeout)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_serve(args):
    """Start the OMaa server."""
    import uvicorn
    from omaa.config import get_config
    from omaa.providers.registry import configured_providers

    cfg = get_config()
    server_cfg = cfg.get("server", {})
    host = args.host or server_cfg.get("host", "0.0.0.0")
    port = args.port or server_cfg.get("port", 3000)

    print(BANNER)
    print(f"  Listening on {host}:{port}")
    for provider, ok in configured_providers(cfg).items():
        print(f"  {'✓' if ok else '✗'}  {provider}")
    print()

    uvicorn.run(
        "omaa.main:app",
        host=host,
        port=int(port),
        reload=args.reload,
        log_level="info",
    )


async def _chat_loop(args):
    from omaa.client.backends import save_preference
    from omaa.client.checkout import Button, CheckoutLauncher
    from omaa.client.orchestrator import create_orchestrator
    from omaa.client.view import TerminalView
    from omaa.errors import ConfigurationError

    cfg, storage, api = _client_parts(args)
    view = TerminalView()
    orch = create_orchestrator(cfg, view, storage=storage, api=api, direct=args.direct)
    launcher = CheckoutLauncher(api, view)

    print(BANNER)
    print(CHAT_HELP)
    await orch.start(args.redirect_url)

    while True:
        try:
            line = input("  you> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not line:
            continue

        if line.startswith("/"):
            cmd, *rest = line[1:].split() or ["help"]
            if cmd in ("quit", "exit", "q"):
                break
            elif cmd == "clear":
                orch.clear_history()
                print("  History cleared.")
            elif cmd == "subscribe":
                plan = rest[0] if rest else "monthly"
                url = await launcher.start(Button("Start Free Trial"), plan)
                if url:
                    print(f"  Checkout opened: {url}")
                    print("  When done, restart with --redirect-url '<the page url>'")
            elif cmd == "recheck":
                await orch.recheck()
            elif cmd == "status":
                _print_access(orch.gate.access_state, orch.gate.state.value)
            elif cmd == "provider":
                if not rest:
                    print(f"  Provider: {orch.backend.provider}")
                    continue
                try:
                    save_preference(storage, rest[0], rest[1] if len(rest) > 1 else None)
                except ConfigurationError as e:
                    view.alert(str(e))
                    continue
                orch.backend.provider = rest[0]
                print(f"  Provider set to {rest[0]}")
            else:
                print(CHAT_HELP)
            continue

        await orch.submit(line)


def cmd_chat(args):
    """Interactive chat session."""
    try:
        asyncio.run(_chat_loop(args))
    except KeyboardInterrupt:
        pass
    print("  Take care. 💛")


def cmd_health(args):
    """Ping a running OMaa server."""
    _, _, api = _client_parts(args)
    data = asyncio.run(api.health())
    if data is None:
        print(f"  ✗  No answer from {api.base_url}")
        sys.exit(1)
    print(f"  ✓  {api.base_url} is {data.get('status', '?').upper()}")
    for provider, ok in data.get("providers", {}).items():
        print(f"  ├─ {provider:<10} {'configured' if ok else 'missing key'}")
    print(f"  └─ stripe     {'enabled' if data.get('stripe') else 'disabled'}")


def cmd_subscribe(args):
    """Open a Stripe checkout session in the browser."""
    from omaa.client.checkout import Button, CheckoutLauncher
    from omaa.client.view import TerminalView

    _, _, api = _client_parts(args)
    launcher = CheckoutLauncher(api, TerminalView())
    url = asyncio.run(launcher.start(Button("Start Free Trial"), args.plan))
    if url is None:
        sys.exit(1)
    print(f"  Checkout opened: {url}")


def _print_access(access, state: str):
    print("  Access")
    print(f"  ├─ State:      {state}")
    print(f"  ├─ Session:    {'yes' if access.has_session else 'no'}")
    print(f"  ├─ Status:     {access.subscription_status.value}")
    print(f"  ├─ Paid:       {access.is_paid}")
    print(f"  ├─ Trialing:   {access.is_trialing}")
    print(f"  ├─ Remaining:  {access.messages_remaining}")
    print(f"  └─ Trial end:  {access.trial_end.isoformat() if access.trial_end else '-'}")


def cmd_status(args):
    """Provider, history length and access snapshot."""
    from omaa.client.access import create_gate
    from omaa.client.backends import stored_model, stored_provider
    from omaa.client.conversation import ConversationStore
    from omaa.providers.catalog import PROVIDER_CATALOG

    cfg, storage, api = _client_parts(args)
    provider = stored_provider(storage, cfg.get("chat", {}).get("default_provider", "openai"))
    store = ConversationStore(storage, int(cfg.get("chat", {}).get("max_history_messages", 20)))
    gate = create_gate(cfg, api, storage)
    asyncio.run(gate.init())

    print("  Chat")
    print(f"  ├─ Provider:   {PROVIDER_CATALOG[provider].display_name}")
    print(f"  ├─ Model:      {stored_model(storage, provider)}")
    print(f"  ├─ History:    {len(store)} / {store.max_messages} messages")
    print(f"  └─ Policy:     {cfg.get('access', {}).get('policy', 'remote')}")
    print()
    _print_access(gate.access_state, gate.state.value)
    reason = gate.paywall_reason()
    if reason:
        print(f"\n  Paywall: {reason.value}")


def cmd_clear(args):
    """Clear the stored chat history."""
    from omaa.client.conversation import ConversationStore

    _, storage, _ = _client_parts(args)
    ConversationStore(storage).clear()
    print("  ✓  Chat history cleared")


def cmd_providers(args):
    """List providers and their models."""
    from omaa.client.backends import stored_provider
    from omaa.providers.catalog import PROVIDER_CATALOG

    _, storage, _ = _client_parts(args)
    current = stored_provider(storage)
    for config in PROVIDER_CATALOG.values():
        marker = "▶" if config.identifier == current else " "
        print(f"  {marker} {config.identifier:<10} {config.display_name}")
        for model_id, label in config.models:
            default = " (default)" if model_id == config.default_model else ""
            print(f"      - {model_id:<30} {label}{default}")


def cmd_key(args):
    """Store (or remove) a provider API key for direct mode."""
    from omaa.client.backends import save_api_key
    from omaa.errors import ConfigurationError

    _, storage, _ = _client_parts(args)
    try:
        save_api_key(storage, args.provider, args.api_key or "")
    except ConfigurationError as e:
        print(f"  ✗  {e}")
        sys.exit(1)
    print(f"  ✓  {args.provider} key {'saved' if args.api_key else 'removed'}")


def cmd_logout(args):
    """Forget the stored subscription session."""
    from omaa.client.access import create_gate

    cfg, storage, api = _client_parts(args)
    create_gate(cfg, api, storage).clear_session()
    print("  ✓  Session forgotten")


# ---------------------------------------------------------------------------
# Parser with aliases
# ---------------------------------------------------------------------------

def _add_command(subparsers, names, help_text, func, setup_fn=None):
    """Register a command under multiple names."""
    p = subparsers.add_parser(names[0], help=help_text, aliases=names[1:])
    p.set_defaults(func=func)
    if setup_fn:
        setup_fn(p)
    return p


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="omaa",
        description="OMaa — your AI parenting companion.",
        epilog="Run 'omaa <command> --help' for command-specific options.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", "-V", action="version",
        version=f"omaa {__version__}",
    )

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    def setup_serve(p):
        p.add_argument("--host", default=None, help="Override listen host")
        p.add_argument("--port", "-p", type=int, default=None, help="Override listen port")
        p.add_argument("--reload", action="store_true", help="Auto-reload on code changes (dev)")

    _add_command(sub, ["serve", "start", "up"], "Start the OMaa server", cmd_serve, setup_serve)

    def setup_url(p):
        p.add_argument("--url", "-u", default=None, help="Server URL (default: from config)")

    def setup_chat(p):
        setup_url(p)
        p.add_argument("--direct", action="store_true",
                       help="Call providers directly with locally stored keys")
        p.add_argument("--redirect-url", default=None,
                       help="Page URL Stripe redirected to after checkout")

    _add_command(sub, ["chat", "talk"], "Interactive chat session", cmd_chat, setup_chat)
    _add_command(sub, ["health", "ping"], "Ping a running OMaa server", cmd_health, setup_url)

    def setup_subscribe(p):
        setup_url(p)
        p.add_argument("--plan", choices=["monthly", "annual"], default="monthly")

    _add_command(sub, ["subscribe", "checkout"],
                 "Open Stripe checkout in the browser", cmd_subscribe, setup_subscribe)
    _add_command(sub, ["status", "info"],
                 "Provider, history and access at a glance", cmd_status, setup_url)
    _add_command(sub, ["clear", "reset"], "Clear the stored chat history", cmd_clear)
    _add_command(sub, ["providers", "models"], "List providers and their models", cmd_providers)

    def setup_key(p):
        p.add_argument("provider", help="Provider id (openai, anthropic, deepseek)")
        p.add_argument("api_key", nargs="?", default=None, help="API key (omit to remove)")

    _add_command(sub, ["key", "apikey"], "Store a provider API key (direct mode)", cmd_key, setup_key)
    _add_command(sub, ["logout", "signout"], "Forget the stored subscription session", cmd_logout)
    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()
    if not args.command:
        print(BANNER)
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
