# -*- coding: utf-8 -*-
"""
Ticker recorder.

Polls the exchange ticker for one base currency and appends the ticks to
the tick store. Meant to be run on a schedule, more often than the
trading cycle, so every window holds several samples.
"""

import logging

from trendtrader.live.interfaces import ExchangeClient
from trendtrader.live.json_store import JsonStore


logger = logging.getLogger(__name__)


class TickerRecorder:
    """Records exchange tickers into a JsonStore."""

    def __init__(self, exchange: ExchangeClient, store: JsonStore):
        self.exchange = exchange
        self.store = store

    def record(self, base_currency: str, include_frozen: bool = False) -> int:
        """
        Fetch and store one tick per ``<base_currency>_*`` pair.

        Parameters
        ----------
        base_currency : str
            Base currency, e.g. "USDT".
        include_frozen : bool, default False
            Also store ticks of pairs that are not trading.

        Returns
        -------
        int
            Number of ticks recorded.
        """
        ticks = self.exchange.get_tickers(base_currency)
        if not include_frozen:
            frozen = [t.currency_pair for t in ticks if t.is_frozen]
            if frozen:
                logger.info(f"Skipping {len(frozen)} frozen pair(s): {frozen}")
            ticks = [t for t in ticks if not t.is_frozen]

        self.store.append_ticks(base_currency, ticks)
        logger.info(f"Recorded {len(ticks)} tick(s) for {base_currency}")
        return len(ticks)
