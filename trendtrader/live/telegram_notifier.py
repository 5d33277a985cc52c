import logging
import requests
from typing import Optional, Sequence

from trendtrader.exceptions import NotificationError
from trendtrader.live.interfaces import Notifier
from trendtrader.models import CycleResult, OrderIntent


logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class LoggingNotifier(Notifier):
    """Notifier that only writes to the log."""

    def publish(self, topic: str, message: str):
        logger.info(f"[{topic}] {message}")


class TelegramNotifier(Notifier):
    """Publishes change notifications to a Telegram chat."""

    def __init__(self, bot_token: str, chat_id: str, session: Optional[requests.Session] = None,
                 timeout: float = 10):
        # Clean and validate token (should be like "123456789:ABCdefGHIjklMNOpqrsTUVwxyz")
        self.bot_token = (bot_token or "").strip()
        self.chat_id = (chat_id or "").strip()
        if not self.bot_token or not self.chat_id:
            raise ValueError("Telegram bot token and chat ID must be provided")
        if ':' not in self.bot_token:
            raise ValueError("Invalid bot token format. Token should be in format 'number:alphanumeric'")

        self.session = session or requests.Session()
        self.timeout = timeout

    def test_connection(self) -> bool:
        """Call getMe to check the bot token. Returns True if valid."""
        url = f"{TELEGRAM_API_URL}/bot{self.bot_token}/getMe"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Telegram connection test failed: {e}")
            return False

        if response.status_code == 200 and response.json().get('ok'):
            bot_info = response.json().get('result', {})
            logger.info(f"Telegram bot connection successful: @{bot_info.get('username', 'N/A')}")
            return True
        if response.status_code == 401:
            logger.error("Telegram 401 Unauthorized: Invalid bot token")
        else:
            logger.error(f"Telegram HTTP {response.status_code}: {response.text}")
        return False

    def publish(self, topic: str, message: str):
        url = f"{TELEGRAM_API_URL}/bot{self.bot_token}/sendMessage"
        try:
            response = self.session.post(
                url,
                json={
                    "chat_id": self.chat_id,
                    "text": f"<b>{topic}</b>\n{message}",
                    "parse_mode": "HTML"
                },
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise NotificationError(f"Telegram network error: {e}") from e

        if response.status_code in (400, 404):
            error_data = response.json() if response.content else {}
            raise NotificationError(
                f"Telegram {response.status_code}: {error_data.get('description', 'Unknown error')} "
                f"(check bot token, chat ID and that /start was sent to the bot)"
            )
        if response.status_code == 401:
            raise NotificationError("Telegram 401 Unauthorized: Invalid bot token")
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise NotificationError(f"Telegram HTTP error: {e}") from e

        logger.debug(f"Telegram message sent on {topic}")


def format_orders_message(base_currency: str, orders: Sequence[OrderIntent]) -> str:
    """
    Format placed orders for a notification.

    Parameters
    ----------
    base_currency : str
        Base currency the orders were priced in.
    orders : sequence of OrderIntent
        Orders that were accepted by the exchange.

    Returns
    -------
    str
        HTML formatted message
    """
    lines = []
    for order in orders:
        emoji = "📈" if order.side.value == "BUY" else "📉"
        lines.append(f"{emoji} <b>{order.side.value}</b> {order.amount:.8f} {order.currency} "
                     f"@ {order.rate} ({order.cost:.2f} {base_currency})")
    return "\n".join(lines)


def format_cycle_message(result: CycleResult) -> str:
    """One-line summary of a cycle result."""
    return (f"{result.base_currency}: {result.signals_updated} signal(s), "
            f"{len(result.orders_placed)} order(s), {len(result.errors)} error(s)")
