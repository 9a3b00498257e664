"""
Checkout initiation.
One shot: ask the server for a Stripe-hosted checkout URL and open it.
On failure the user gets an alert and the button is restored.
"""

from __future__ import annotations

import logging
import webbrowser
from dataclasses import dataclass
from typing import Callable

from omaa.client.api import OmaaApiClient
from omaa.client.view import ChatView
from omaa.errors import OmaaError, UpstreamError

logger = logging.getLogger(__name__)

LOADING_LABEL = "Loading..."
FAILURE_ALERT = "Unable to start checkout. Please try again."


@dataclass
class Button:
    """The control that triggered checkout."""
    label: str
    enabled: bool = True


class CheckoutLauncher:
    def __init__(
        self,
        api: OmaaApiClient,
        view: ChatView,
        open_url: Callable[[str], object] = webbrowser.open,
    ):
        self.api = api
        self.view = view
        self.open_url = open_url

    async def start(self, button: Button, plan: str = "monthly") -> str | None:
        """Returns the checkout URL that was opened, or None on failure."""
        original_label = button.label
        button.label = LOADING_LABEL
        button.enabled = False

        try:
            data = await self.api.create_checkout_session(plan)
            url = data.get("url")
            if not url:
                raise UpstreamError(data.get("error") or "Failed to create checkout session")
        except OmaaError as e:
            logger.error("Checkout error: %s", e)
            self.view.alert(FAILURE_ALERT)
            button.label = original_label
            button.enabled = True
            return None

        self.open_url(url)
        return url
