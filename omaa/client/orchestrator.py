"""
Chat orchestrator: one submitted message, start to finish.

    submit(text)
      1. empty / whitespace-only        -> ignored
      2. gate blocked                   -> paywall(reason), input disabled
      3. append user message
      4. backend.send(capped history, system prompt)
      5a. success -> append reply, meter usage, refresh remaining count
      5b. failure -> drop the user message again, show the error inline

Nothing here is a global: store, gate, backend and view are handed in.
"""

from __future__ import annotations

import logging
from pathlib import Path

from omaa.client.access import AccessGate, create_gate
from omaa.client.api import OmaaApiClient
from omaa.client.backends import ChatBackend, DirectChatBackend, ServerChatBackend, stored_provider
from omaa.client.conversation import DEFAULT_MAX_MESSAGES, ConversationStore
from omaa.client.storage import LocalStorage
from omaa.client.view import ChatView
from omaa.errors import OmaaError
from omaa.models import Role
from omaa.prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Sorry, I encountered an error: "


class ChatOrchestrator:
    def __init__(
        self,
        store: ConversationStore,
        gate: AccessGate,
        backend: ChatBackend,
        view: ChatView,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        self.store = store
        self.gate = gate
        self.backend = backend
        self.view = view
        self.system_prompt = system_prompt

    async def start(self, redirect_url: str | None = None):
        """Verify access and replay the stored history into the view."""
        await self.gate.init(redirect_url)
        for message in self.store.messages:
            self.view.show_message(message.role, message.content)
        self._render_access()

    def _render_access(self):
        if self.gate.can_send():
            self.view.set_input_enabled(True)
            self.view.update_remaining(self.gate.access_state.messages_remaining)
        else:
            self.view.show_paywall(self.gate.paywall_reason())
            self.view.set_input_enabled(False)

    async def recheck(self):
        """Explicit re-verification, e.g. after the user finished checkout."""
        await self.gate.verify()
        self._render_access()

    async def submit(self, text: str) -> str | None:
        """Returns the assistant reply, or None when nothing was answered."""
        text = (text or "").strip()
        if not text:
            return None

        if not self.gate.can_send():
            self.view.show_paywall(self.gate.paywall_reason())
            self.view.set_input_enabled(False)
            return None

        self.store.append(Role.USER, text)
        self.view.show_message(Role.USER, text)
        self.view.set_loading(True)
        try:
            reply = await self.backend.send(self.store.messages, self.system_prompt)
        except OmaaError as e:
            logger.error("Chat error: %s", e)
            self.store.pop_last()
            self.view.show_error(f"{ERROR_PREFIX}{e}")
            return None
        finally:
            self.view.set_loading(False)

        self.store.append(Role.ASSISTANT, reply)
        self.view.show_message(Role.ASSISTANT, reply)

        if self.gate.meters_usage:
            access = await self.gate.record_message()
            if self.gate.can_send():
                self.view.update_remaining(access.messages_remaining)
            else:
                self.view.show_paywall(self.gate.paywall_reason())
                self.view.set_input_enabled(False)
        return reply

    def clear_history(self):
        self.store.clear()
        logger.info("Chat history cleared")


def open_storage(cfg: dict) -> LocalStorage:
    path = cfg.get("client", {}).get("storage_path", "~/.omaa/storage.json")
    return LocalStorage(Path(path))


def create_orchestrator(
    cfg: dict,
    view: ChatView,
    storage: LocalStorage | None = None,
    api: OmaaApiClient | None = None,
    direct: bool = False,
) -> ChatOrchestrator:
    """Wire up a client from config. `direct` talks to providers with locally stored keys."""
    client_cfg = cfg.get("client", {})
    chat_cfg = cfg.get("chat", {})
    storage = storage or open_storage(cfg)
    api = api or OmaaApiClient(
        client_cfg.get("server_url", "http://localhost:3000"),
        timeout=chat_cfg.get("timeout", 120),
    )
    provider = stored_provider(storage, chat_cfg.get("default_provider", "openai"))

    if direct:
        backend: ChatBackend = DirectChatBackend(
            storage,
            provider,
            timeout=chat_cfg.get("timeout", 120),
            max_tokens=chat_cfg.get("max_tokens", 1024),
            temperature=chat_cfg.get("temperature", 0.7),
        )
    else:
        backend = ServerChatBackend(api, provider)

    return ChatOrchestrator(
        store=ConversationStore(
            storage, max_messages=int(chat_cfg.get("max_history_messages", DEFAULT_MAX_MESSAGES)),
        ),
        gate=create_gate(cfg, api, storage),
        backend=backend,
        view=view,
        system_prompt=chat_cfg.get("system_prompt") or SYSTEM_PROMPT,
    )
