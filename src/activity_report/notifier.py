"""Webhook delivery of rendered reports."""

from __future__ import annotations

import logging

import requests

from .errors import DeliveryError
from .models import DeliveryResult, ReportMessage

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """Post report messages to a chat webhook (Slack incoming-webhook compatible)."""

    def __init__(self, webhook_url: str, timeout_seconds: int = 30) -> None:
        self._webhook_url = webhook_url
        self._timeout_seconds = timeout_seconds
        self._session = requests.Session()

    def deliver(self, message: ReportMessage) -> DeliveryResult:
        """POST the message payload once.

        Returns:
            The delivery result when the webhook answers HTTP 200.

        Raises:
            DeliveryError: On transport failures or any status other than 200.
        """
        logger.debug("Webhook payload: %s", message.payload)

        try:
            response = self._session.post(
                self._webhook_url,
                json=message.payload,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise DeliveryError(f"Failed to send webhook notification: {exc}") from exc

        logger.debug(
            "Webhook response",
            extra={"status_code": response.status_code, "body": response.text},
        )

        if response.status_code != 200:
            raise DeliveryError(
                f"Failed to send webhook notification (HTTP {response.status_code}): {response.text}"
            )

        return DeliveryResult(status_code=response.status_code, body=response.text)
