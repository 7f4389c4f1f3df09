"""Tests for teams_notify/client.py"""

import pytest
import requests

from teams_notify.client import (
    DeliveryError,
    NetworkError,
    WebhookClient,
    WebhookError,
)

WEBHOOK = "https://outlook.office.com/webhook/abc"
PAYLOAD = {"@type": "MessageCard", "summary": "develop deployed", "sections": []}


@pytest.fixture
def client() -> WebhookClient:
    return WebhookClient()


# ---------------------------------------------------------------------------
# post() - happy path
# ---------------------------------------------------------------------------

def test_post_sends_json_payload(client, requests_mock):
    adapter = requests_mock.post(WEBHOOK, text="1")
    client.post(WEBHOOK, PAYLOAD)
    assert adapter.call_count == 1
    assert adapter.last_request.json() == PAYLOAD
    assert adapter.last_request.headers["Content-Type"] == "application/json"


def test_post_returns_response(client, requests_mock):
    requests_mock.post(WEBHOOK, text="1")
    assert client.post(WEBHOOK, PAYLOAD).text == "1"


# ---------------------------------------------------------------------------
# post() - HTTP error codes
# ---------------------------------------------------------------------------

def test_post_400_raises_delivery_error(client, requests_mock):
    requests_mock.post(WEBHOOK, status_code=400, text="Summary or Text is required.")
    with pytest.raises(DeliveryError, match="400") as info:
        client.post(WEBHOOK, PAYLOAD)
    assert info.value.status_code == 400


def test_post_500_is_a_webhook_error(client, requests_mock):
    requests_mock.post(WEBHOOK, status_code=500, text="Internal Server Error")
    with pytest.raises(WebhookError):
        client.post(WEBHOOK, PAYLOAD)


def test_post_is_not_retried(client, requests_mock):
    adapter = requests_mock.post(WEBHOOK, status_code=503)
    with pytest.raises(DeliveryError):
        client.post(WEBHOOK, PAYLOAD)
    assert adapter.call_count == 1


# ---------------------------------------------------------------------------
# post() - network errors
# ---------------------------------------------------------------------------

def test_post_timeout_raises_network_error(requests_mock):
    requests_mock.post(WEBHOOK, exc=requests.exceptions.Timeout)
    with pytest.raises(NetworkError, match="timed out after 5s"):
        WebhookClient(timeout=5).post(WEBHOOK, PAYLOAD)


def test_post_connection_error_raises_network_error(client, requests_mock):
    requests_mock.post(WEBHOOK, exc=requests.exceptions.ConnectionError)
    with pytest.raises(NetworkError, match="Unable to reach"):
        client.post(WEBHOOK, PAYLOAD)
