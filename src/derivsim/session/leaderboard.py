"""
Leaderboard — Ранжирование участников по снапшотам одной версии рынка

Снапшоты группируются по market_version: в одну таблицу никогда не
попадают портфели, оценённые на разных тиках.
"""

from collections import OrderedDict
from typing import Dict, List, Optional

from derivsim.core.domain.snapshot import PortfolioSnapshot
from derivsim.scoring.score import RankedScore, rank_scores


class Leaderboard:
    """Хранилище последних снапшотов по версиям рынка (ограниченное)."""

    def __init__(self, max_versions: int = 256):
        if max_versions <= 0:
            raise ValueError(f"max_versions must be positive, got {max_versions}")
        self.max_versions = max_versions
        self._by_version: "OrderedDict[int, Dict[str, PortfolioSnapshot]]" = OrderedDict()

    def record(self, snapshot: PortfolioSnapshot) -> None:
        """Сохранение снапшота; самые старые версии вытесняются."""
        version = snapshot.market_version
        bucket = self._by_version.get(version)
        if bucket is None:
            bucket = {}
            self._by_version[version] = bucket
            # Версии приходят не строго по порядку от разных workers
            self._by_version = OrderedDict(sorted(self._by_version.items()))
            while len(self._by_version) > self.max_versions:
                self._by_version.popitem(last=False)
            if version not in self._by_version:
                return
            bucket = self._by_version[version]
        bucket[snapshot.participant_id] = snapshot

    @property
    def latest_version(self) -> Optional[int]:
        return next(reversed(self._by_version), None)

    def versions(self) -> List[int]:
        return list(self._by_version)

    def snapshots(self, version: Optional[int] = None) -> Dict[str, PortfolioSnapshot]:
        """Снапшоты участников на версии (default: последняя)."""
        if version is None:
            version = self.latest_version
        if version is None:
            return {}
        return dict(self._by_version.get(version, {}))

    def standings(self, version: Optional[int] = None) -> List[RankedScore]:
        """Таблица на версии рынка (default: последняя записанная)."""
        snapshots = self.snapshots(version)
        return rank_scores({pid: s.score for pid, s in snapshots.items()})

    def clear(self) -> None:
        self._by_version.clear()
