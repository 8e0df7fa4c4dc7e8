"""
Trading Session — Координатор симуляции

Session владеет публикатором рынка, leaderboard и одним ParticipantWorker
на участника. Тик публикуется один раз и рассылается всем workers;
ордера маршрутизируются в почтовый ящик владельца. Состояние участника
читается только через опубликованные PortfolioSnapshot.

Пример:
    async with Session(config, participants=["alice", "bob"]) as session:
        session.publish_tick({"futures_price": 82.5, ...})
        result = await session.submit(order)
        await session.drain()
        table = session.leaderboard()
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from derivsim.config.models import SessionConfig
from derivsim.core.contracts.parsers import parse_order_intake
from derivsim.core.domain.clock import utc_now
from derivsim.core.domain.market_state import MarketState
from derivsim.core.domain.order import Order
from derivsim.core.domain.snapshot import PortfolioSnapshot
from derivsim.core.errors import ConfigurationError
from derivsim.core.logging import get_logger
from derivsim.matching.engine import MatchResult
from derivsim.scoring.score import RankedScore
from derivsim.session.leaderboard import Leaderboard
from derivsim.session.messages import (
    CancelOrder,
    MarketUpdate,
    Reconfigure,
    ResetDay,
    SnapshotRequest,
    SubmitOrder,
)
from derivsim.session.publisher import MarketSnapshotPublisher, Tick
from derivsim.session.worker import ParticipantWorker


class Session:
    """Торговая сессия: рынок, участники, leaderboard."""

    def __init__(self, config: Optional[SessionConfig] = None, participants: Iterable[str] = ()):
        self.config = config or SessionConfig()
        self.publisher = MarketSnapshotPublisher(
            self.config.symbol, history_size=self.config.snapshot_history_size
        )
        self.leaderboard_store = Leaderboard(max_versions=self.config.snapshot_history_size)
        self._workers: Dict[str, ParticipantWorker] = {}
        self._started = False
        self._log = get_logger("Session", session=self.config.session_id)

        for participant_id in participants:
            self.add_participant(participant_id)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def __aenter__(self) -> "Session":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def start(self) -> None:
        """Запуск workers; требует работающего event loop."""
        self._started = True
        for worker in self._workers.values():
            worker.start()
        self._log.info(f"Session started with {len(self._workers)} participants")

    async def stop(self) -> None:
        for worker in self._workers.values():
            await worker.stop()
        self._started = False
        self._log.info("Session stopped")

    @property
    def participants(self) -> List[str]:
        return list(self._workers)

    def add_participant(self, participant_id: str) -> ParticipantWorker:
        """
        Регистрация участника.

        Участник, добавленный после начала торгов, получает текущий
        снапшот рынка первым сообщением.
        """
        if not participant_id:
            raise ValueError("participant_id must be non-empty")
        if participant_id in self._workers:
            raise ValueError(f"participant {participant_id} already registered")

        worker = ParticipantWorker(
            participant_id, self.config, snapshot_sink=self.leaderboard_store.record
        )
        self._workers[participant_id] = worker
        if self.publisher.latest is not None:
            worker.post(MarketUpdate(self.publisher.latest))
        if self._started:
            worker.start()

        self._log.debug(f"Participant {participant_id} added")
        return worker

    def _require_started(self) -> None:
        if not self._started:
            raise RuntimeError("session is not started")

    def worker(self, participant_id: str) -> ParticipantWorker:
        try:
            return self._workers[participant_id]
        except KeyError:
            raise KeyError(f"unknown participant {participant_id}") from None

    # =========================================================================
    # MARKET
    # =========================================================================

    def publish_tick(self, tick: Tick) -> MarketState:
        """Публикация тика и рассылка нового снапшота всем участникам."""
        market = self.publisher.publish(tick)
        for worker in self._workers.values():
            worker.post(MarketUpdate(market))
        return market

    @property
    def market(self) -> Optional[MarketState]:
        return self.publisher.latest

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def submit(self, order: Order) -> MatchResult:
        """Отправка ордера в почтовый ящик владельца; ожидание результата."""
        self._require_started()
        worker = self.worker(order.participant_id)
        reply = asyncio.get_running_loop().create_future()
        worker.post(SubmitOrder(order, reply))
        return await reply

    async def submit_payload(self, payload: Mapping[str, Any]) -> MatchResult:
        """
        Приём заявки по контракту order_intake.

        Raises:
            ContractViolation: Payload не соответствует контракту
        """
        return await self.submit(parse_order_intake(payload))

    async def cancel(
        self, participant_id: str, order_id: str, timestamp: Optional[datetime] = None
    ) -> MatchResult:
        self._require_started()
        worker = self.worker(participant_id)
        reply = asyncio.get_running_loop().create_future()
        worker.post(CancelOrder(order_id, timestamp or utc_now(), reply))
        return await reply

    # =========================================================================
    # SNAPSHOTS
    # =========================================================================

    async def drain(self) -> None:
        """Ожидание обработки всех сообщений, уже стоящих в очередях."""
        await asyncio.gather(*(w.drain() for w in self._workers.values()))

    async def snapshot(self, participant_id: str) -> Optional[PortfolioSnapshot]:
        """Последний опубликованный снапшот участника (после сообщений в очереди)."""
        self._require_started()
        worker = self.worker(participant_id)
        reply = asyncio.get_running_loop().create_future()
        worker.post(SnapshotRequest(reply))
        return await reply

    def leaderboard(self, version: Optional[int] = None) -> List[RankedScore]:
        return self.leaderboard_store.standings(version)

    # =========================================================================
    # SESSION CONTROL
    # =========================================================================

    async def reset_day(self, new_bankroll: Optional[float] = None) -> None:
        """Граница торгового дня для всех участников."""
        self._require_started()
        replies = []
        for worker in self._workers.values():
            reply = asyncio.get_running_loop().create_future()
            worker.post(ResetDay(reply, new_bankroll))
            replies.append(reply)
        await asyncio.gather(*replies)
        self._log.info("Trading day reset")

    async def reconfigure(self, config: SessionConfig) -> None:
        """
        Замена конфигурации сессии.

        Raises:
            ConfigurationError: Попытка сменить символ фьючерса
        """
        if config.symbol != self.config.symbol:
            raise ConfigurationError(
                f"cannot change symbol {self.config.symbol} → {config.symbol} in a running session"
            )

        self._require_started()
        self.config = config
        replies = []
        for worker in self._workers.values():
            reply = asyncio.get_running_loop().create_future()
            worker.post(Reconfigure(config, reply))
            replies.append(reply)
        await asyncio.gather(*replies)
        self._log.info(f"Session reconfigured: {config.session_id}")
