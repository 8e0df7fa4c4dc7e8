"""
Session: публикатор рынка, actors участников, leaderboard.
"""

from derivsim.session.leaderboard import Leaderboard
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
from derivsim.session.publisher import MarketSnapshotPublisher
from derivsim.session.session import Session
from derivsim.session.worker import ParticipantWorker

__all__ = [
    # Coordination
    "Session",
    "MarketSnapshotPublisher",
    "Leaderboard",
    # Actors
    "ParticipantWorker",
    "WorkerMessage",
    "SubmitOrder",
    "CancelOrder",
    "MarketUpdate",
    "SnapshotRequest",
    "ResetDay",
    "Reconfigure",
    "Stop",
]
