import os
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import List
from dotenv import load_dotenv

from trendtrader.exceptions import ConfigError
from trendtrader.models import WindowConfig
from trendtrader.decision.config import DecisionConfig

logger = logging.getLogger(__name__)

# Load .env file from project root if it exists
project_root = Path(__file__).parent.parent
env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)
    logger.debug(f"Loaded environment variables from {env_file}")


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() in ("true", "1", "yes")


@dataclass
class TrendTraderConfig:
    # Exchange credentials (only needed for balances and orders)
    api_key: str = ""
    api_secret: str = ""
    testnet: bool = True

    # Currencies
    base_currencies: List[str] = field(default_factory=lambda: ["USDT"])
    account_key: str = "strategy1"

    # Aggregation windows (minutes)
    primary_minutes: int = 10
    short_minutes: int = 5

    # Spending cap
    buy_fraction: float = 1 / 3

    # Storage
    data_dir: str = "data"
    tick_retention_hours: float = 24.0

    # Paper trading balance (used with --dry-run)
    paper_initial_balance: float = 100.0

    # Telegram notifications
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    # Logging
    log_level: str = "INFO"
    log_file: str = ""

    def __post_init__(self):
        """Override defaults with environment variables if present."""
        # API credentials
        self.api_key = os.getenv("BINANCE_API_KEY", self.api_key)
        self.api_secret = os.getenv("BINANCE_API_SECRET", self.api_secret)
        self.testnet = _env_bool("BINANCE_TESTNET", self.testnet)

        # Currencies
        if os.getenv("TREND_BASE_CURRENCIES"):
            self.base_currencies = [
                c.strip().upper() for c in os.getenv("TREND_BASE_CURRENCIES").split(",") if c.strip()
            ]
        self.account_key = os.getenv("TREND_ACCOUNT_KEY", self.account_key)

        try:
            if os.getenv("TREND_PRIMARY_MINUTES"):
                self.primary_minutes = int(os.getenv("TREND_PRIMARY_MINUTES"))
            if os.getenv("TREND_SHORT_MINUTES"):
                self.short_minutes = int(os.getenv("TREND_SHORT_MINUTES"))
            if os.getenv("TREND_BUY_FRACTION"):
                self.buy_fraction = float(os.getenv("TREND_BUY_FRACTION"))
            if os.getenv("TREND_TICK_RETENTION_HOURS"):
                self.tick_retention_hours = float(os.getenv("TREND_TICK_RETENTION_HOURS"))
            if os.getenv("PAPER_INITIAL_BALANCE"):
                self.paper_initial_balance = float(os.getenv("PAPER_INITIAL_BALANCE"))
        except ValueError as e:
            raise ConfigError(f"Invalid numeric environment variable: {e}") from e

        self.data_dir = os.getenv("TREND_DATA_DIR", self.data_dir)

        # Telegram notifications
        self.telegram_bot_token = os.getenv("TELEGRAM_BOT_TOKEN", self.telegram_bot_token)
        self.telegram_chat_id = os.getenv("TELEGRAM_CHAT_ID", self.telegram_chat_id)

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", self.log_level)
        self.log_file = os.getenv("LOG_FILE", self.log_file)

    def validate(self):
        """Raise ConfigError if the settings cannot work together."""
        if not self.base_currencies:
            raise ConfigError("At least one base currency is required")
        if self.tick_retention_hours * 60 < self.primary_minutes:
            raise ConfigError(
                f"Tick retention ({self.tick_retention_hours}h) is shorter than the "
                f"primary window ({self.primary_minutes}m)"
            )
        # Both constructors validate their own fields
        self.window_config()
        self.decision_config()

    def window_config(self) -> WindowConfig:
        return WindowConfig(primary_minutes=self.primary_minutes, short_minutes=self.short_minutes)

    def decision_config(self) -> DecisionConfig:
        return DecisionConfig(buy_fraction=self.buy_fraction)

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key.strip() and self.api_secret.strip())

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token.strip() and self.telegram_chat_id.strip())

    def to_dict(self) -> dict:
        """Convert config to dictionary (secrets masked)."""
        return {
            'api_key': f"{self.api_key[:6]}..." if self.api_key else "",
            'api_secret': "***" if self.api_secret else "",
            'testnet': self.testnet,
            'base_currencies': list(self.base_currencies),
            'account_key': self.account_key,
            'primary_minutes': self.primary_minutes,
            'short_minutes': self.short_minutes,
            'buy_fraction': self.buy_fraction,
            'data_dir': self.data_dir,
            'tick_retention_hours': self.tick_retention_hours,
            'paper_initial_balance': self.paper_initial_balance,
            'telegram_enabled': self.telegram_enabled,
            'log_level': self.log_level,
            'log_file': self.log_file
        }
