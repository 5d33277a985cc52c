# -*- coding: utf-8 -*-
"""
JSON file store.

Keeps account state, signals, recorded ticks and paper balances as JSON
documents under one data directory. Every write goes to a temporary file
that replaces the target, so a document is either fully old or fully new.
"""

import os
import re
import json
import logging
import tempfile
from pathlib import Path
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from trendtrader.exceptions import InvalidInput, PersistenceError
from trendtrader.live.interfaces import Store, TickSource
from trendtrader.models import AccountState, CurrencySignal, Tick, utc_now


logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')


class JsonStore(Store, TickSource):
    """File-backed store and tick source."""

    def __init__(self, data_dir: str, tick_retention: timedelta = timedelta(hours=24),
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize JSON store.

        Parameters
        ----------
        data_dir : str
            Directory holding the documents. Created if missing.
        tick_retention : timedelta, default 24 hours
            Ticks older than this are pruned whenever ticks are appended.
        clock : callable or None, optional
            Returns the current UTC time. Defaults to the system clock.
        """
        self.data_dir = Path(data_dir)
        self.tick_retention = tick_retention
        self.clock = clock or utc_now

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create data directory {self.data_dir}: {e}") from e

        logger.info(f"Initialized JsonStore at {self.data_dir}")

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def _path(self, kind: str, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise InvalidInput(f"Invalid store key {key!r}")
        return self.data_dir / f"{kind}_{key}.json"

    def _read(self, path: Path, default: Any) -> Any:
        if not path.exists():
            return default
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Error reading {path}: {e}") from e

    def _write(self, path: Path, payload: Any):
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile('w', dir=self.data_dir, prefix=f".{path.name}.",
                                             suffix=".tmp", delete=False) as f:
                tmp_name = f.name
                json.dump(payload, f, indent=2, default=str)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Error writing {path}: {e}") from e

    # ------------------------------------------------------------------
    # Account state
    # ------------------------------------------------------------------

    def get_account_state(self, account_key: str) -> AccountState:
        data = self._read(self._path("account_info", account_key), None)
        try:
            state = AccountState.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Corrupt account state for {account_key}: {e}") from e
        logger.debug(f"Loaded account state {account_key}: {state.last_action.value}, "
                     f"{len(state.positions)} position(s)")
        return state

    def put_account_state(self, account_key: str, state: AccountState):
        self._write(self._path("account_info", account_key), state.to_dict())
        logger.info(f"Saved account state {account_key}: {state.last_action.value}, "
                    f"{len(state.positions)} position(s)")

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def put_signals(self, base_currency: str, signals: Mapping[str, CurrencySignal]):
        payload = {currency: signal.to_dict() for currency, signal in sorted(signals.items())}
        self._write(self._path("currency_data", base_currency), payload)
        logger.info(f"Saved {len(payload)} signal(s) for {base_currency}")

    def get_signals(self, base_currency: str) -> Dict[str, CurrencySignal]:
        data = self._read(self._path("currency_data", base_currency), {})
        try:
            return {currency: CurrencySignal.from_dict(item) for currency, item in data.items()}
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Corrupt signals for {base_currency}: {e}") from e

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def _load_ticks(self, base_currency: str) -> List[Tick]:
        data = self._read(self._path("ticker", base_currency), [])
        try:
            return [Tick.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Corrupt ticks for {base_currency}: {e}") from e

    def append_ticks(self, base_currency: str, ticks: Iterable[Tick]) -> int:
        """
        Append ticks of one base currency and prune expired ones.

        Returns
        -------
        int
            Number of ticks stored after pruning.
        """
        new_ticks = list(ticks)
        for tick in new_ticks:
            if tick.base_currency != base_currency:
                raise InvalidInput(f"Tick {tick.currency_pair} does not belong to base {base_currency}")

        cutoff = self.clock() - self.tick_retention
        stored = [t for t in self._load_ticks(base_currency) + new_ticks if t.timestamp > cutoff]
        self._write(self._path("ticker", base_currency), [t.to_dict() for t in stored])
        logger.info(f"Appended {len(new_ticks)} tick(s) for {base_currency}, {len(stored)} stored")
        return len(stored)

    def fetch_recent(self, base_currency: str, max_age: timedelta) -> List[Tick]:
        cutoff = self.clock() - max_age
        ticks = [t for t in self._load_ticks(base_currency) if t.timestamp > cutoff]
        logger.debug(f"Fetched {len(ticks)} tick(s) for {base_currency} newer than {cutoff.isoformat()}")
        return ticks

    # ------------------------------------------------------------------
    # Paper balances
    # ------------------------------------------------------------------

    def load_paper_balances(self, account_key: str) -> Optional[Dict[str, float]]:
        data = self._read(self._path("paper_balance", account_key), None)
        if data is None:
            return None
        return {currency: float(amount) for currency, amount in data.items()}

    def save_paper_balances(self, account_key: str, balances: Mapping[str, float]):
        self._write(self._path("paper_balance", account_key), dict(sorted(balances.items())))
