# -*- coding: utf-8 -*-
"""
Data model shared by the signal and decision layers.

Ticks are immutable market snapshots; CurrencySignal is the per-currency
trend summary produced every cycle; AccountState is the position memory the
decision engine reads once and writes once per cycle.
"""

from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional, List, Tuple

from trendtrader.exceptions import InvalidInput, ConfigError


PAIR_DELIMITER = "_"


def split_pair(currency_pair: str) -> Tuple[str, str]:
    """
    Split a ``BASE_QUOTE`` pair into its two currencies.

    Parameters
    ----------
    currency_pair : str
        Pair such as ``USDT_BTC`` (USDT is the base, BTC the traded currency).

    Returns
    -------
    tuple of (str, str)
        (base_currency, currency)

    Raises
    ------
    InvalidInput
        If the pair has no delimiter or an empty side.
    """
    base, sep, currency = currency_pair.partition(PAIR_DELIMITER)
    if not sep or not base or not currency:
        raise InvalidInput(f"Malformed currency pair: {currency_pair!r}")
    return base, currency


def make_pair(base_currency: str, currency: str) -> str:
    """Build a ``BASE_QUOTE`` pair string."""
    return f"{base_currency}{PAIR_DELIMITER}{currency}"


def ensure_utc(value: datetime) -> datetime:
    """Return a timezone-aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO string or datetime into a UTC datetime."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        return ensure_utc(datetime.fromisoformat(value))
    raise InvalidInput(f"Unsupported timestamp value: {value!r}")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Tick:
    """One observed market snapshot for a currency pair."""

    currency_pair: str
    timestamp: datetime
    last: float
    highest_bid: float = 0.0
    lowest_ask: float = 0.0
    base_volume: float = 0.0
    quote_volume: float = 0.0
    percent_change: float = 0.0
    high_24h: float = 0.0
    is_frozen: bool = False

    @property
    def base_currency(self) -> str:
        return split_pair(self.currency_pair)[0]

    @property
    def currency(self) -> str:
        return split_pair(self.currency_pair)[1]

    def to_record(self) -> Dict[str, Any]:
        """Flat record (datetime kept as-is) used to build DataFrames."""
        return asdict(self)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation."""
        record = asdict(self)
        record['timestamp'] = ensure_utc(self.timestamp).isoformat()
        return record

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Tick':
        return cls(
            currency_pair=data['currency_pair'],
            timestamp=parse_timestamp(data['timestamp']),
            last=float(data['last']),
            highest_bid=float(data.get('highest_bid', 0.0)),
            lowest_ask=float(data.get('lowest_ask', 0.0)),
            base_volume=float(data.get('base_volume', 0.0)),
            quote_volume=float(data.get('quote_volume', 0.0)),
            percent_change=float(data.get('percent_change', 0.0)),
            high_24h=float(data.get('high_24h', 0.0)),
            is_frozen=bool(data.get('is_frozen', False))
        )


TICK_COLUMNS = [
    'currency_pair', 'timestamp', 'last', 'highest_bid', 'lowest_ask',
    'base_volume', 'quote_volume', 'percent_change', 'high_24h', 'is_frozen'
]


@dataclass(frozen=True)
class WindowConfig:
    """Trailing windows (minutes) used for signal aggregation."""

    primary_minutes: int = 10
    short_minutes: int = 5

    def __post_init__(self):
        if self.primary_minutes <= 0 or self.short_minutes <= 0:
            raise ConfigError(
                f"Window lengths must be positive, got primary={self.primary_minutes}, "
                f"short={self.short_minutes}"
            )
        if self.short_minutes > self.primary_minutes:
            raise ConfigError(
                f"Short window ({self.short_minutes}m) must not exceed the primary window "
                f"({self.primary_minutes}m)"
            )


@dataclass(frozen=True)
class ShortWindowSignal:
    """Trend statistics of the short window, nested under the primary signal."""

    window_minutes: int
    percentage_gain: float = 0.0
    volatility_factor: float = 0.0
    slope_angle_degrees: float = 0.0
    sample_count: int = 0

    @classmethod
    def empty(cls, window_minutes: int) -> 'ShortWindowSignal':
        return cls(window_minutes=window_minutes)

    @classmethod
    def from_signal(cls, signal: 'CurrencySignal') -> 'ShortWindowSignal':
        return cls(
            window_minutes=signal.window_minutes,
            percentage_gain=signal.percentage_gain,
            volatility_factor=signal.volatility_factor,
            slope_angle_degrees=signal.slope_angle_degrees or 0.0,
            sample_count=signal.sample_count
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ShortWindowSignal':
        return cls(
            window_minutes=int(data['window_minutes']),
            percentage_gain=float(data.get('percentage_gain', 0.0)),
            volatility_factor=float(data.get('volatility_factor', 0.0)),
            slope_angle_degrees=float(data.get('slope_angle_degrees', 0.0)),
            sample_count=int(data.get('sample_count', 0))
        )


@dataclass(frozen=True)
class CurrencySignal:
    """Trend statistics for one currency over one trailing window."""

    currency: str
    window_minutes: int
    current_price: float
    past_price: float
    percentage_gain: float
    slope: float
    volatility_factor: float
    volume_24h: float
    highest_bid: float
    slope_angle_degrees: Optional[float] = None
    sample_count: int = 0
    timestamp: Optional[datetime] = None
    short: Optional[ShortWindowSignal] = None

    def with_short(self, short: ShortWindowSignal) -> 'CurrencySignal':
        return replace(self, short=short)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'currency': self.currency,
            'window_minutes': self.window_minutes,
            'current_price': self.current_price,
            'past_price': self.past_price,
            'percentage_gain': self.percentage_gain,
            'slope': self.slope,
            'slope_angle_degrees': self.slope_angle_degrees,
            'volatility_factor': self.volatility_factor,
            'volume_24h': self.volume_24h,
            'highest_bid': self.highest_bid,
            'sample_count': self.sample_count,
            'timestamp': ensure_utc(self.timestamp).isoformat() if self.timestamp else None,
            'short': self.short.to_dict() if self.short else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CurrencySignal':
        short = data.get('short')
        timestamp = data.get('timestamp')
        angle = data.get('slope_angle_degrees')
        return cls(
            currency=data['currency'],
            window_minutes=int(data['window_minutes']),
            current_price=float(data['current_price']),
            past_price=float(data['past_price']),
            percentage_gain=float(data['percentage_gain']),
            slope=float(data['slope']),
            volatility_factor=float(data['volatility_factor']),
            volume_24h=float(data.get('volume_24h', 0.0)),
            highest_bid=float(data.get('highest_bid', 0.0)),
            slope_angle_degrees=float(angle) if angle is not None else None,
            sample_count=int(data.get('sample_count', 0)),
            timestamp=parse_timestamp(timestamp) if timestamp else None,
            short=ShortWindowSignal.from_dict(short) if short else None
        )


class LastAction(Enum):
    """Last pass executed by the decision engine."""
    NONE = "NONE"
    BUY = "BUY"
    SELL = "SELL"


class OrderSide(Enum):
    """Order side enumeration."""
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class Position:
    """Remembered prices for one open position."""

    buy_price: float
    peak_price: float
    low_price: float

    @classmethod
    def opened_at(cls, price: float) -> 'Position':
        return cls(buy_price=price, peak_price=price, low_price=price)

    def track(self, current_price: float) -> 'Position':
        """Return a copy with peak raised / low lowered to include ``current_price``."""
        return Position(
            buy_price=self.buy_price,
            peak_price=max(self.peak_price, current_price),
            low_price=min(self.low_price, current_price)
        )

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Position':
        return cls(
            buy_price=float(data['buy_price']),
            peak_price=float(data['peak_price']),
            low_price=float(data['low_price'])
        )


@dataclass
class AccountState:
    """Persisted trading-position memory for one strategy account."""

    last_action: LastAction = LastAction.NONE
    positions: Dict[str, Position] = field(default_factory=dict)

    def copy(self) -> 'AccountState':
        # Position is frozen, a shallow copy of the mapping is enough
        return AccountState(last_action=self.last_action, positions=dict(self.positions))

    def has_position(self, currency: str) -> bool:
        return currency in self.positions

    def to_dict(self) -> Dict[str, Any]:
        return {
            'last_action': self.last_action.value,
            'positions': {
                currency: position.to_dict()
                for currency, position in sorted(self.positions.items())
            }
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'AccountState':
        if not data:
            return cls()
        return cls(
            last_action=LastAction(data.get('last_action', LastAction.NONE.value)),
            positions={
                currency: Position.from_dict(position)
                for currency, position in data.get('positions', {}).items()
            }
        )


@dataclass(frozen=True)
class OrderPolicy:
    """Execution policy of a limit order."""

    fill_or_kill: bool = False
    immediate_or_cancel: bool = True

    @property
    def time_in_force(self) -> str:
        if self.fill_or_kill:
            return "FOK"
        if self.immediate_or_cancel:
            return "IOC"
        return "GTC"


@dataclass(frozen=True)
class OrderIntent:
    """An order the decision engine wants placed."""

    currency: str
    pair: str
    side: OrderSide
    rate: float
    amount: float  # base-currency units of the traded currency
    reason: str = ""

    @property
    def cost(self) -> float:
        """Value of the order in the base (quote-side) currency."""
        return self.rate * self.amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            'currency': self.currency,
            'pair': self.pair,
            'side': self.side.value,
            'rate': self.rate,
            'amount': self.amount,
            'cost': self.cost,
            'reason': self.reason
        }


@dataclass
class OrderResult:
    """Exchange acknowledgement of a placed order."""

    order_id: str
    pair: str
    side: OrderSide
    rate: float
    amount: float
    status: str = "NEW"
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PerCurrencyError:
    """A non-fatal failure recorded against one currency (or the cycle, if None)."""

    currency: Optional[str]
    kind: str
    message: str

    @classmethod
    def from_exception(cls, currency: Optional[str], exc: Exception) -> 'PerCurrencyError':
        return cls(currency=currency, kind=type(exc).__name__, message=str(exc))


@dataclass
class CycleResult:
    """Outcome of one aggregation + decision cycle."""

    base_currency: str
    signals_updated: int = 0
    orders_placed: List[OrderIntent] = field(default_factory=list)
    errors: List[PerCurrencyError] = field(default_factory=list)
    signals: Dict[str, CurrencySignal] = field(default_factory=dict)
    state: Optional[AccountState] = None

    @property
    def ok(self) -> bool:
        return not self.errors
