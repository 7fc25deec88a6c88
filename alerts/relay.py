"""Alert relay integration (POST /alert)."""
import logging
import requests
from config import AlertConfig

logger = logging.getLogger(__name__)


class RelayNotifier:
    """Posts alert messages to the relay, which forwards them to Telegram."""

    def __init__(self, config: AlertConfig):
        """
        Initialize relay notifier.

        Args:
            config: Alert configuration (relay URL and timeout)
        """
        self.config = config
        self.enabled = bool(config.relay_url)

    def send_alert(self, message: str) -> bool:
        """
        Send alert message to the relay.

        Args:
            message: Alert message to send

        Returns:
            True on an HTTP success status, False otherwise
        """
        if not self.enabled:
            return False

        try:
            response = requests.post(
                self.config.relay_url,
                json={"message": message},
                timeout=self.config.timeout_seconds
            )
        except requests.RequestException as e:
            logger.warning("Error sending alert to relay: %s", e)
            return False

        if not response.ok:
            logger.warning("Relay rejected alert: HTTP %s", response.status_code)
            return False
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("ok") is False:
            # Accepted at HTTP level; the relay reports Telegram-side problems
            logger.warning("Relay reported: %s", body.get("error") or body.get("description"))
        return True
