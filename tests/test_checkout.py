"""
Tests for checkout initiation.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from omaa.client.checkout import FAILURE_ALERT, LOADING_LABEL, Button, CheckoutLauncher
from omaa.errors import NetworkError


@pytest.fixture
def api():
    api = MagicMock()
    api.create_checkout_session = AsyncMock()
    return api


@pytest.fixture
def view():
    return MagicMock()


@pytest.mark.asyncio
async def test_opens_checkout_url(api, view):
    api.create_checkout_session.return_value = {
        "sessionId": "cs_1", "url": "https://checkout.stripe.com/c/pay/cs_1",
    }
    opened = []
    launcher = CheckoutLauncher(api, view, open_url=opened.append)
    button = Button("Start Free Trial")

    url = await launcher.start(button, "annual")
    assert url == "https://checkout.stripe.com/c/pay/cs_1"
    assert opened == [url]
    api.create_checkout_session.assert_awaited_once_with("annual")
    assert button.label == LOADING_LABEL
    assert not button.enabled
    view.alert.assert_not_called()


@pytest.mark.asyncio
async def test_missing_url_alerts_and_restores_button(api, view):
    api.create_checkout_session.return_value = {"sessionId": "cs_1"}
    opened = []
    launcher = CheckoutLauncher(api, view, open_url=opened.append)
    button = Button("Start Free Trial")

    assert await launcher.start(button) is None
    view.alert.assert_called_once_with(FAILURE_ALERT)
    assert button.label == "Start Free Trial"
    assert button.enabled
    assert opened == []


@pytest.mark.asyncio
async def test_request_failure_alerts(api, view):
    api.create_checkout_session.side_effect = NetworkError("offline")
    launcher = CheckoutLauncher(api, view, open_url=MagicMock())
    button = Button("Subscribe")

    assert await launcher.start(button) is None
    view.alert.assert_called_once_with(FAILURE_ALERT)
    assert button.label == "Subscribe"
    assert button.enabled
    api.create_checkout_session.assert_awaited_once()
