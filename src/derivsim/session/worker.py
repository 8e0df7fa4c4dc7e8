"""
Participant Worker — Actor одного участника

Единственный владелец позиций, ожидающих ордеров, истории fills,
DrawdownTracker и BreachTracker участника. Все изменения проходят через
одну очередь сообщений и обрабатываются синхронно, без await между
решением об исполнении и обновлением позиции: fill и cancel одного
ордера линеаризуются очередью.

На MarketUpdate:
1. Повторная оценка ожидающих ордеров
2. Greeks и VaR портфеля
3. Переходы BreachEvent
4. Обновление equity / drawdown и score
5. Публикация замороженного PortfolioSnapshot
"""

import asyncio
from typing import Callable, Dict, List, Optional

from derivsim.config.models import SessionConfig
from derivsim.core.domain.market_state import MarketState
from derivsim.core.domain.order import Fill, Order
from derivsim.core.domain.position import Position
from derivsim.core.domain.snapshot import PortfolioSnapshot
from derivsim.core.logging import get_logger
from derivsim.matching.engine import FillEngine, MatchResult, RejectReason
from derivsim.risk.aggregator import PortfolioRiskAggregator
from derivsim.risk.breaches import BreachTracker
from derivsim.risk.limits import check_greek_limits, check_var_limit
from derivsim.scoring.drawdown import DrawdownTracker
from derivsim.scoring.score import ScoreInputs, compute_score
from derivsim.session.messages import (
    CancelOrder,
    MarketUpdate,
    Reconfigure,
    ResetDay,
    SnapshotRequest,
    Stop,
    SubmitOrder,
    WorkerMessage,
)

SnapshotSink = Callable[[PortfolioSnapshot], None]


class ParticipantWorker:
    """Actor участника поверх asyncio.Queue."""

    def __init__(
        self,
        participant_id: str,
        config: SessionConfig,
        engine: Optional[FillEngine] = None,
        aggregator: Optional[PortfolioRiskAggregator] = None,
        snapshot_sink: Optional[SnapshotSink] = None,
    ):
        """
        Args:
            participant_id: ID участника
            config: Конфигурация сессии
            engine: Движок исполнения (default: FillEngine(config))
            aggregator: Агрегатор риска (default: PortfolioRiskAggregator(config))
            snapshot_sink: Получатель опубликованных снапшотов (например, Leaderboard.record)
        """
        self.participant_id = participant_id
        self.config = config
        self.engine = engine or FillEngine(config)
        self.aggregator = aggregator or PortfolioRiskAggregator(config)
        self._snapshot_sink = snapshot_sink

        self._inbox: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._log = get_logger("ParticipantWorker", participant=participant_id)

        # Состояние участника (владеет только этот worker)
        self._positions: Dict[str, Position] = {}
        self._orders: Dict[str, Order] = {}
        self._resting: Dict[str, Order] = {}
        self._fills: List[Fill] = []
        self._market: Optional[MarketState] = None
        self._snapshot: Optional[PortfolioSnapshot] = None
        self.drawdown = DrawdownTracker(config.initial_bankroll)
        self.breaches = BreachTracker(participant_id, config.breach_severity)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            self._log.warning("Worker already running")
            return
        self._task = asyncio.create_task(self._run(), name=f"participant-{self.participant_id}")
        self._log.debug("Worker started")

    async def stop(self) -> None:
        """Корректная остановка: сообщения до Stop будут обработаны."""
        if not self.is_running:
            return
        self.post(Stop())
        await self._task
        self._log.debug("Worker stopped")

    def post(self, message: WorkerMessage) -> None:
        self._inbox.put_nowait(message)

    async def drain(self) -> None:
        """Ожидание обработки всех сообщений, поставленных до вызова."""
        await self._inbox.join()

    async def _run(self) -> None:
        while True:
            message = await self._inbox.get()
            try:
                if isinstance(message, Stop):
                    return
                self.handle(message)
            finally:
                self._inbox.task_done()

    # =========================================================================
    # MESSAGE HANDLING
    # =========================================================================

    def handle(self, message: WorkerMessage) -> None:
        """
        Синхронная обработка одного сообщения.

        Ошибка обработки запроса передаётся вызывающему через reply future;
        ошибка MarketUpdate логируется, worker продолжает работу.
        """
        reply = getattr(message, "reply", None)
        try:
            result = self._dispatch(message)
        except Exception as e:
            if reply is None:
                self._log.error(f"Failed to handle {type(message).__name__}: {e}")
                return
            if not reply.done():
                reply.set_exception(e)
            return

        if reply is not None and not reply.done():
            reply.set_result(result)

    def _dispatch(self, message: WorkerMessage):
        if isinstance(message, SubmitOrder):
            return self._on_submit(message.order)
        if isinstance(message, CancelOrder):
            return self._on_cancel(message)
        if isinstance(message, MarketUpdate):
            return self._on_market(message.market)
        if isinstance(message, SnapshotRequest):
            return self._snapshot
        if isinstance(message, ResetDay):
            return self._on_reset_day(message.new_bankroll)
        if isinstance(message, Reconfigure):
            return self._on_reconfigure(message.config)
        raise TypeError(f"Unsupported message: {type(message).__name__}")

    def _on_submit(self, order: Order) -> MatchResult:
        if order.participant_id != self.participant_id:
            raise ValueError(
                f"order {order.order_id} belongs to {order.participant_id}, "
                f"not {self.participant_id}"
            )
        if order.order_id in self._orders:
            # Ранее принятый ордер с тем же id не перезаписывается
            return self.engine.reject(order, RejectReason.DUPLICATE_ORDER_ID, order.created_at)

        if self._market is None:
            result = self.engine.reject(order, RejectReason.NO_MARKET_DATA, order.created_at)
        else:
            result = self.engine.submit(order, self._market)

        self._record(result)
        return result

    def _on_cancel(self, message: CancelOrder) -> MatchResult:
        order = self._orders.get(message.order_id)
        if order is None:
            return self.engine.unknown_order(message.order_id)

        result = self.engine.cancel(order, message.timestamp)
        self._record(result)
        return result

    def _on_market(self, market: MarketState) -> Optional[PortfolioSnapshot]:
        if self._market is not None and market.version <= self._market.version:
            self._log.debug(f"Ignoring stale market v{market.version}")
            return self._snapshot

        self._market = market
        for result in self.engine.reevaluate_resting(list(self._resting.values()), market):
            self._record(result)

        return self._publish_snapshot(market)

    def _on_reset_day(self, new_bankroll: Optional[float]) -> Optional[PortfolioSnapshot]:
        """Граница дня: drawdown и нарушения очищаются, позиции и PnL сохраняются."""
        self.drawdown.reset(new_bankroll)
        self.breaches.reset()
        self._log.info("Day reset")
        if self._market is None:
            self._snapshot = None
            return None
        return self._publish_snapshot(self._market)

    def _on_reconfigure(self, config: SessionConfig) -> None:
        self.config = config
        self.engine = FillEngine(config)
        self.aggregator = PortfolioRiskAggregator(config)
        self.breaches.severity_config = config.breach_severity
        self._log.info(f"Reconfigured: session {config.session_id}")

    # =========================================================================
    # STATE
    # =========================================================================

    def _record(self, result: MatchResult) -> None:
        order = result.order
        if result.reject_reason is RejectReason.ORDER_NOT_CANCELLABLE:
            return

        self._orders[order.order_id] = order
        if order.is_resting:
            self._resting[order.order_id] = order
        else:
            self._resting.pop(order.order_id, None)

        if result.fill is not None:
            self._apply_fill(result.fill)

    def _apply_fill(self, fill: Fill) -> None:
        key = fill.instrument.key
        position = self._positions.get(key) or Position(
            participant_id=self.participant_id,
            instrument=fill.instrument,
            contract_multiplier=self.config.contract_multiplier,
        )
        self._positions[key] = position.apply_fill(fill)
        self._fills.append(fill)

    def _publish_snapshot(self, market: MarketState) -> PortfolioSnapshot:
        positions = list(self._positions.values())
        limits = self.config.risk_limits

        greeks = self.aggregator.aggregate(positions, market)
        var = self.aggregator.estimate_var(positions, market)

        checks = check_greek_limits(greeks, limits)
        checks.append(check_var_limit(var.var95, limits.var))
        self.breaches.evaluate(checks, market.timestamp)

        realized = sum(p.realized_pnl for p in positions)
        fees = sum(p.total_fees for p in positions)
        unrealized = sum(
            self.aggregator.position_value(p, market)
            - p.quantity * p.avg_price * p.contract_multiplier
            for p in positions
            if not p.is_flat
        )

        drawdown = self.drawdown.update_equity(realized - fees, unrealized, market.timestamp)
        score = compute_score(
            ScoreInputs(
                realized_pnl=realized,
                var_limit=limits.var,
                unrealized_pnl=unrealized,
                weighted_breach_seconds=self.breaches.weighted_breach_seconds(),
                current_var=var.var95,
                max_drawdown=drawdown.max_drawdown,
                total_fees=fees,
            ),
            self.config.scoring,
        )

        snapshot = PortfolioSnapshot(
            participant_id=self.participant_id,
            market_version=market.version,
            positions=positions,
            greeks=greeks,
            var95=var.var95,
            score=score,
            drawdown=drawdown,
            open_breaches=self.breaches.open_events(),
            resting_orders=len(self._resting),
        )
        self._snapshot = snapshot
        if self._snapshot_sink is not None:
            self._snapshot_sink(snapshot)
        return snapshot

    # =========================================================================
    # READ-ONLY VIEWS (для тестов и отладки; вне worker читать только снапшоты)
    # =========================================================================

    @property
    def snapshot(self) -> Optional[PortfolioSnapshot]:
        return self._snapshot

    def positions(self) -> List[Position]:
        return list(self._positions.values())

    def resting_orders(self) -> List[Order]:
        return list(self._resting.values())

    def fills(self) -> List[Fill]:
        return list(self._fills)

    def order(self, order_id: str) -> Optional[Order]:
        return self._orders.get(order_id)
