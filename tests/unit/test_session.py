"""
Тесты для торговой сессии

Coverage:
1. MarketSnapshotPublisher: версии, кольцо истории, подписчики, монотонность времени
2. Leaderboard: группировка по версии рынка, вытеснение старых версий
3. ParticipantWorker: синхронная обработка сообщений, устаревшие снапшоты
4. Session: поток тик → ордер → снапшот → leaderboard
5. Нарушения лимитов и штрафы score внутри сессии
6. Отмена, отказы, ошибки маршрутизации, reset_day, reconfigure
"""

import asyncio
from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from derivsim.config import SessionConfig
from derivsim.core.domain import (
    Future,
    MarketState,
    Order,
    OrderStatus,
    OrderStyle,
    RiskDimension,
    Severity,
    Side,
)
from derivsim.core.errors import ConfigurationError, ContractViolation
from derivsim.matching import RejectReason
from derivsim.session import (
    Leaderboard,
    MarketSnapshotPublisher,
    MarketUpdate,
    ParticipantWorker,
    Session,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
FUTURE = Future(symbol="BRN")

_ids = count(1)


def make_tick(price: float = 82.5, seconds: int = 0) -> dict:
    return {
        "futures_price": price,
        "risk_free_rate": 0.05,
        "timestamp": (T0 + timedelta(seconds=seconds)).isoformat(),
    }


def make_market(version: int = 1, price: float = 82.5, seconds: int = 0) -> MarketState:
    return MarketState(
        version=version,
        symbol="BRN",
        futures_price=price,
        risk_free_rate=0.05,
        timestamp=T0 + timedelta(seconds=seconds),
    )


def make_order(
    participant_id: str = "alice",
    side: Side = Side.BUY,
    style: OrderStyle = OrderStyle.MARKET,
    quantity: int = 1,
    limit_price=None,
    order_id=None,
) -> Order:
    return Order(
        order_id=order_id or f"s-{next(_ids)}",
        participant_id=participant_id,
        side=side,
        style=style,
        instrument=FUTURE,
        quantity=quantity,
        limit_price=limit_price,
        created_at=T0,
    )


# =============================================================================
# PUBLISHER
# =============================================================================


class TestMarketSnapshotPublisher:
    """Публикатор версионированных снапшотов."""

    def test_versions_increase(self):
        publisher = MarketSnapshotPublisher("BRN")
        first = publisher.publish(make_tick(82.5, 0))
        second = publisher.publish(make_tick(83.0, 1))

        assert (first.version, second.version) == (1, 2)
        assert first.symbol == "BRN"
        assert publisher.latest is second
        assert publisher.get(1) is first

    def test_history_is_bounded(self):
        publisher = MarketSnapshotPublisher("BRN", history_size=2)
        for i in range(3):
            publisher.publish(make_tick(80.0 + i, i))

        assert [m.version for m in publisher.history()] == [2, 3]
        assert publisher.get(1) is None

    def test_market_state_input_gets_new_version(self):
        publisher = MarketSnapshotPublisher("BRN")
        publisher.publish(make_tick())
        market = publisher.publish(make_market(version=99, seconds=5))
        assert market.version == 2

    def test_symbol_mismatch(self):
        publisher = MarketSnapshotPublisher("WTI")
        with pytest.raises(ContractViolation, match="does not match"):
            publisher.publish(make_market())
        assert publisher.latest is None

    def test_timestamp_must_not_go_back(self):
        publisher = MarketSnapshotPublisher("BRN")
        publisher.publish(make_tick(seconds=10))
        with pytest.raises(ContractViolation, match="precedes"):
            publisher.publish(make_tick(seconds=5))
        # Отвергнутый тик не расходует версию
        assert publisher.publish(make_tick(seconds=10)).version == 2

    def test_invalid_tick(self):
        publisher = MarketSnapshotPublisher("BRN")
        with pytest.raises(ContractViolation):
            publisher.publish({"futures_price": -1.0})

    def test_subscribers_receive_same_object(self):
        publisher = MarketSnapshotPublisher("BRN")
        queue = publisher.subscribe()
        market = publisher.publish(make_tick())
        assert queue.get_nowait() is market

        publisher.unsubscribe(queue)
        publisher.publish(make_tick(seconds=1))
        assert queue.empty()

    def test_slow_subscriber_keeps_latest_snapshots(self):
        publisher = MarketSnapshotPublisher("BRN")
        queue = publisher.subscribe(maxsize=2)
        for i in range(4):
            publisher.publish(make_tick(80.0 + i, i))

        assert queue.qsize() == 2
        assert [queue.get_nowait().version for _ in range(2)] == [3, 4]

    def test_subscriber_queue_bounded_by_history(self):
        publisher = MarketSnapshotPublisher("BRN", history_size=3)
        assert publisher.subscribe().maxsize == 3
        with pytest.raises(ValueError):
            publisher.subscribe(maxsize=0)

    def test_history_size_validation(self):
        with pytest.raises(ValueError):
            MarketSnapshotPublisher("BRN", history_size=0)


# =============================================================================
# WORKER (синхронно, без event loop)
# =============================================================================


class TestParticipantWorker:
    """Обработка сообщений ParticipantWorker."""

    def test_market_update_publishes_snapshot(self):
        published = []
        worker = ParticipantWorker("alice", SessionConfig(), snapshot_sink=published.append)
        worker.handle(MarketUpdate(make_market(version=1)))

        assert len(published) == 1
        snapshot = published[0]
        assert snapshot is worker.snapshot
        assert snapshot.market_version == 1
        assert snapshot.positions == []
        assert snapshot.var95 == 0.0
        assert snapshot.score.raw_score == 0.0

    def test_stale_update_ignored(self):
        published = []
        worker = ParticipantWorker("alice", SessionConfig(), snapshot_sink=published.append)
        worker.handle(MarketUpdate(make_market(version=2, seconds=10)))
        worker.handle(MarketUpdate(make_market(version=1, seconds=0)))
        worker.handle(MarketUpdate(make_market(version=2, seconds=10)))

        assert [s.market_version for s in published] == [2]
        assert worker.snapshot.market_version == 2


# =============================================================================
# LEADERBOARD
# =============================================================================


class TestLeaderboard:
    """Leaderboard по версиям рынка."""

    def _publish(self, board: Leaderboard, participant_id: str, versions):
        worker = ParticipantWorker(participant_id, SessionConfig(), snapshot_sink=board.record)
        for version in versions:
            worker.handle(MarketUpdate(make_market(version=version, seconds=version)))

    def test_groups_by_version(self):
        board = Leaderboard()
        self._publish(board, "alice", [1, 2])
        self._publish(board, "bob", [1])

        assert board.versions() == [1, 2]
        assert board.latest_version == 2
        assert set(board.snapshots(1)) == {"alice", "bob"}
        assert set(board.snapshots()) == {"alice"}
        assert [r.participant_id for r in board.standings(1)] == ["alice", "bob"]

    def test_oldest_versions_evicted(self):
        board = Leaderboard(max_versions=2)
        self._publish(board, "alice", [1, 2, 3])
        assert board.versions() == [2, 3]

        # Запоздавший снапшот вытесненной версии не сохраняется
        self._publish(board, "bob", [1])
        assert board.versions() == [2, 3]

    def test_empty_and_clear(self):
        board = Leaderboard()
        assert board.latest_version is None
        assert board.standings() == []

        self._publish(board, "alice", [1])
        board.clear()
        assert board.snapshots() == {}

    def test_max_versions_validation(self):
        with pytest.raises(ValueError):
            Leaderboard(max_versions=0)


# =============================================================================
# SESSION
# =============================================================================


class TestSessionFlow:
    """Полный цикл сессии."""

    @pytest.mark.asyncio
    async def test_tick_order_snapshot_leaderboard(self):
        async with Session(participants=["alice", "bob"]) as session:
            session.publish_tick(make_tick(82.5, 0))
            result = await session.submit(make_order("alice", quantity=1))

            assert result.status == OrderStatus.FILLED
            assert result.fill.price == pytest.approx(82.5)
            assert result.fill.fees == pytest.approx(3.40)

            session.publish_tick(make_tick(83.0, 60))
            await session.drain()

            snapshot = await session.snapshot("alice")
            assert snapshot.market_version == 2
            assert snapshot.greeks.delta == pytest.approx(1_000.0)
            assert snapshot.score.unrealized_pnl == pytest.approx(500.0)
            assert snapshot.score.gross_pnl == pytest.approx(0.0)
            assert snapshot.score.fee_penalty == pytest.approx(3.40)
            assert snapshot.score.raw_score == pytest.approx(-3.40)
            assert snapshot.score.display_score == 0.0
            assert snapshot.open_breaches == []

            standings = session.leaderboard()
            assert [(r.rank, r.participant_id) for r in standings] == [(1, "bob"), (2, "alice")]

    @pytest.mark.asyncio
    async def test_breach_penalties_accrue(self):
        async with Session(participants=["alice"]) as session:
            session.publish_tick(make_tick(82.5, 0))
            result = await session.submit(make_order("alice", quantity=2))
            assert result.fill.fees == pytest.approx(6.80)

            session.publish_tick(make_tick(82.5, 10))
            session.publish_tick(make_tick(82.5, 20))
            snapshot = await session.snapshot("alice")

            severities = {e.dimension: e.severity for e in snapshot.open_breaches}
            assert severities == {
                RiskDimension.DELTA: Severity.CRITICAL,
                RiskDimension.VAR: Severity.BREACH,
            }
            assert snapshot.var95 == pytest.approx(6_600.0)
            assert snapshot.score.breach_penalty == pytest.approx(4.0)
            assert snapshot.score.var_penalty == pytest.approx(320.0)
            assert snapshot.score.drawdown_penalty == pytest.approx(0.68)
            assert snapshot.score.raw_score == pytest.approx(-331.48)

    @pytest.mark.asyncio
    async def test_resting_order_fills_on_later_tick(self):
        async with Session(participants=["alice"]) as session:
            session.publish_tick(make_tick(82.5, 0))
            result = await session.submit(
                make_order("alice", style=OrderStyle.LIMIT, quantity=3, limit_price=80.0)
            )
            assert result.status == OrderStatus.PENDING
            assert result.fill is None

            session.publish_tick(make_tick(79.5, 10))
            snapshot = await session.snapshot("alice")
            assert snapshot.resting_orders == 0
            assert snapshot.positions[0].quantity == 3

            worker = session.worker("alice")
            assert worker.order(result.order.order_id).status == OrderStatus.FILLED
            assert worker.fills()[0].price <= 80.0

    @pytest.mark.asyncio
    async def test_cancel_resting_order(self):
        async with Session(participants=["alice"]) as session:
            session.publish_tick(make_tick(82.5, 0))
            order = make_order("alice", style=OrderStyle.LIMIT, quantity=1, limit_price=70.0)
            await session.submit(order)

            cancelled = await session.cancel("alice", order.order_id, T0 + timedelta(seconds=5))
            assert cancelled.status == OrderStatus.CANCELLED

            again = await session.cancel("alice", order.order_id)
            assert again.reject_reason == RejectReason.ORDER_NOT_CANCELLABLE
            assert session.worker("alice").order(order.order_id).status == OrderStatus.CANCELLED

            missing = await session.cancel("alice", "missing")
            assert missing.rejected
            assert missing.order is None
            assert missing.reject_reason == RejectReason.UNKNOWN_ORDER
            assert "missing" in missing.message

    @pytest.mark.asyncio
    async def test_late_participant_receives_current_market(self):
        async with Session(participants=["alice"]) as session:
            session.publish_tick(make_tick(82.5, 0))
            session.add_participant("carol")
            await session.drain()

            snapshot = await session.snapshot("carol")
            assert snapshot.market_version == 1
            assert session.participants == ["alice", "carol"]


class TestSessionErrors:
    """Отказы и ошибки маршрутизации."""

    @pytest.mark.asyncio
    async def test_no_market_data(self):
        async with Session(participants=["alice"]) as session:
            result = await session.submit(make_order("alice"))
            assert result.status == OrderStatus.REJECTED
            assert result.reject_reason == RejectReason.NO_MARKET_DATA
            assert await session.snapshot("alice") is None

    @pytest.mark.asyncio
    async def test_submit_payload(self):
        async with Session(participants=["bob"]) as session:
            session.publish_tick(make_tick(82.5, 0))
            result = await session.submit_payload(
                {
                    "participant_id": "bob",
                    "side": "SELL",
                    "style": "MARKET",
                    "instrument": {"kind": "future", "symbol": "BRN"},
                    "quantity": 0,
                }
            )
            assert result.reject_reason == RejectReason.INVALID_QUANTITY

            with pytest.raises(ContractViolation):
                await session.submit_payload({"participant_id": "bob"})

    @pytest.mark.asyncio
    async def test_unknown_participant(self):
        async with Session(participants=["alice"]) as session:
            with pytest.raises(KeyError, match="unknown participant"):
                await session.submit(make_order("mallory"))

    @pytest.mark.asyncio
    async def test_duplicate_order_id(self):
        async with Session(participants=["alice"]) as session:
            session.publish_tick(make_tick(82.5, 0))
            first = await session.submit(make_order("alice", order_id="dup"))
            second = await session.submit(make_order("alice", order_id="dup"))
            assert second.rejected
            assert second.reject_reason == RejectReason.DUPLICATE_ORDER_ID
            assert len(session.worker("alice").fills()) == 1
            # Исходный ордер не перезаписан отказом
            assert session.worker("alice").order("dup") == first.order

    @pytest.mark.asyncio
    async def test_requires_start(self):
        session = Session(participants=["alice"])
        with pytest.raises(RuntimeError, match="not started"):
            await session.submit(make_order("alice"))

    def test_duplicate_participant(self):
        session = Session(participants=["alice"])
        with pytest.raises(ValueError):
            session.add_participant("alice")
        with pytest.raises(ValueError):
            session.add_participant("")

    @pytest.mark.asyncio
    async def test_stop_processes_queued_messages(self):
        session = Session(participants=["alice"])
        session.start()
        session.publish_tick(make_tick(82.5, 0))
        await session.stop()

        worker = session.worker("alice")
        assert not worker.is_running
        assert worker.snapshot.market_version == 1


class TestSessionControl:
    """reset_day и reconfigure."""

    @pytest.mark.asyncio
    async def test_reset_day_clears_penalties(self):
        async with Session(participants=["alice"]) as session:
            session.publish_tick(make_tick(82.5, 0))
            await session.submit(make_order("alice", quantity=2))
            session.publish_tick(make_tick(82.5, 10))
            session.publish_tick(make_tick(82.5, 20))
            await session.drain()

            await session.reset_day(new_bankroll=50_000.0)
            snapshot = await session.snapshot("alice")

            worker = session.worker("alice")
            assert worker.drawdown.initial_bankroll == 50_000.0
            assert snapshot.score.breach_penalty == 0.0
            # Позиции переживают границу дня
            assert snapshot.positions[0].quantity == 2

    @pytest.mark.asyncio
    async def test_reconfigure_limits(self):
        async with Session(participants=["alice"]) as session:
            new_config = SessionConfig.model_validate(
                {"session_id": "wide-limits", "risk_limits": {"delta": 5_000, "var": 20_000}}
            )
            await session.reconfigure(new_config)

            session.publish_tick(make_tick(82.5, 0))
            await session.submit(make_order("alice", quantity=2))
            session.publish_tick(make_tick(82.5, 10))
            snapshot = await session.snapshot("alice")

            assert session.config is new_config
            assert session.worker("alice").config is new_config
            assert snapshot.open_breaches == []

    @pytest.mark.asyncio
    async def test_reconfigure_symbol_change_rejected(self):
        async with Session(participants=["alice"]) as session:
            with pytest.raises(ConfigurationError, match="cannot change symbol"):
                await session.reconfigure(SessionConfig(symbol="WTI"))
            assert session.config.symbol == "BRN"

    @pytest.mark.asyncio
    async def test_concurrent_participants(self):
        names = [f"p{i}" for i in range(5)]
        async with Session(participants=names) as session:
            session.publish_tick(make_tick(82.5, 0))
            results = await asyncio.gather(
                *(session.submit(make_order(name, quantity=1)) for name in names)
            )
            assert all(r.status == OrderStatus.FILLED for r in results)

            session.publish_tick(make_tick(82.5, 10))
            await session.drain()
            assert len(session.leaderboard_store.snapshots(2)) == 5
