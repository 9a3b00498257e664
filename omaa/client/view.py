"""
UI port for the chat client.
The orchestrator only talks to ChatView; TerminalView renders to stdout.
"""

from __future__ import annotations

import abc
import sys

from omaa.models import PaywallReason, Role

# ANSI colors
C_RESET = "\033[0m"
C_BOLD = "\033[1m"
C_DIM = "\033[2m"
C_USER = "\033[96m"       # cyan
C_ASSISTANT = "\033[95m"  # magenta
C_ERROR = "\033[91m"      # red
C_NOTICE = "\033[93m"     # yellow

PAYWALL_TEXT = {
    PaywallReason.NOT_ENROLLED: "Start your free trial to chat with OMaa. Type /subscribe to enroll.",
    PaywallReason.MESSAGE_LIMIT: "You've used all your trial messages. Type /subscribe to keep chatting.",
    PaywallReason.SUBSCRIPTION_ENDED: "Your subscription has ended. Type /subscribe to renew.",
    PaywallReason.TRIAL_EXPIRED: "Your free trial has ended. Type /subscribe to keep chatting.",
}


class ChatView(abc.ABC):
    """Everything the orchestrator may ask the UI to do."""

    @abc.abstractmethod
    def show_message(self, role: Role, content: str): ...

    @abc.abstractmethod
    def show_error(self, text: str): ...

    @abc.abstractmethod
    def show_paywall(self, reason: PaywallReason): ...

    @abc.abstractmethod
    def set_loading(self, loading: bool): ...

    @abc.abstractmethod
    def set_input_enabled(self, enabled: bool): ...

    @abc.abstractmethod
    def update_remaining(self, remaining: int | str): ...

    @abc.abstractmethod
    def alert(self, text: str): ...


class TerminalView(ChatView):
    def __init__(self, stream=None, color: bool | None = None):
        self.stream = stream or sys.stdout
        self.color = self.stream.isatty() if color is None else color
        self.input_enabled = True
        self.loading = False

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def _write(self, text: str):
        print(text, file=self.stream, flush=True)

    def show_message(self, role: Role, content: str):
        if role == Role.USER:
            self._write(f"{self._c(C_USER)}{self._c(C_BOLD)}You:{self._c(C_RESET)} {content}")
        else:
            self._write(f"{self._c(C_ASSISTANT)}{self._c(C_BOLD)}OMaa:{self._c(C_RESET)} {content}\n")

    def show_error(self, text: str):
        self._write(f"{self._c(C_ERROR)}OMaa: {text}{self._c(C_RESET)}\n")

    def show_paywall(self, reason: PaywallReason):
        self._write(f"{self._c(C_NOTICE)}  ⚑  {PAYWALL_TEXT.get(reason, reason.value)}{self._c(C_RESET)}")

    def set_loading(self, loading: bool):
        if loading and not self.loading:
            self._write(f"{self._c(C_DIM)}OMaa is thinking...{self._c(C_RESET)}")
        self.loading = loading

    def set_input_enabled(self, enabled: bool):
        self.input_enabled = enabled

    def update_remaining(self, remaining: int | str):
        if remaining == "unlimited":
            return
        self._write(f"{self._c(C_DIM)}  {remaining} free messages left{self._c(C_RESET)}")

    def alert(self, text: str):
        self._write(f"{self._c(C_ERROR)}  ✗  {text}{self._c(C_RESET)}")
