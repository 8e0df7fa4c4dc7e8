"""
Market Snapshot Publisher — Единственный производитель снапшотов рынка

Каждый тик превращается в замороженный MarketState со следующей версией.
История — append-only кольцо ограниченного размера; подписчики получают
тот же неизменяемый объект, поэтому конкурентные читатели никогда не
видят наполовину обновлённый тик.
"""

import asyncio
from collections import deque
from typing import Any, Deque, List, Mapping, Optional, Union

from derivsim.core.contracts.parsers import parse_market_tick
from derivsim.core.domain.market_state import MarketState
from derivsim.core.errors import ContractViolation
from derivsim.core.logging import get_logger

Tick = Union[Mapping[str, Any], MarketState]


class MarketSnapshotPublisher:
    """Публикатор версионированных снапшотов одного фьючерса."""

    def __init__(self, symbol: str, history_size: int = 256):
        if history_size <= 0:
            raise ValueError(f"history_size must be positive, got {history_size}")
        self.symbol = symbol
        self._history: Deque[MarketState] = deque(maxlen=history_size)
        self._next_version = 1
        self._subscribers: List[asyncio.Queue] = []
        self._log = get_logger("MarketPublisher")

    @property
    def latest(self) -> Optional[MarketState]:
        return self._history[-1] if self._history else None

    def get(self, version: int) -> Optional[MarketState]:
        """Снапшот по версии, если он ещё в кольце истории."""
        for market in reversed(self._history):
            if market.version == version:
                return market
        return None

    def history(self) -> List[MarketState]:
        return list(self._history)

    def subscribe(self, maxsize: Optional[int] = None) -> asyncio.Queue:
        """
        Очередь новых снапшотов.

        Очередь ограничена (default: history_size); если подписчик не успевает
        читать, самый старый снапшот вытесняется: последний всегда доставлен.
        """
        size = self._history.maxlen if maxsize is None else maxsize
        if size <= 0:
            raise ValueError(f"maxsize must be positive, got {size}")
        queue: asyncio.Queue = asyncio.Queue(maxsize=size)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def publish(self, tick: Tick) -> MarketState:
        """
        Публикация тика.

        Args:
            tick: Payload по контракту market_tick или готовый MarketState
                  (его версия будет заменена)

        Returns:
            Опубликованный MarketState

        Raises:
            ContractViolation: Невалидный тик или timestamp раньше предыдущего
        """
        version = self._next_version
        if isinstance(tick, MarketState):
            market = tick.model_copy(update={"version": version})
        else:
            market = parse_market_tick(tick, version=version, symbol=self.symbol)

        if market.symbol != self.symbol:
            raise ContractViolation(
                "market_tick", [f"symbol {market.symbol} does not match {self.symbol}"]
            )

        previous = self.latest
        if previous is not None and market.timestamp < previous.timestamp:
            raise ContractViolation(
                "market_tick",
                [f"timestamp {market.timestamp.isoformat()} precedes "
                 f"{previous.timestamp.isoformat()}"],
            )

        self._history.append(market)
        self._next_version += 1

        for queue in self._subscribers:
            if queue.full():
                dropped = queue.get_nowait()
                queue.task_done()
                self._log.warning(f"Slow subscriber: dropped v{dropped.version}")
            queue.put_nowait(market)

        self._log.debug(
            f"Published v{market.version}: F={market.futures_price:.4f} "
            f"r={market.risk_free_rate:.4f} vols={len(market.implied_vols)}"
        )
        return market
