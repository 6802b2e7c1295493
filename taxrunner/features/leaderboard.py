import logging
from collections import OrderedDict
from typing import Dict, List, Optional

from taxrunner.database.models import LeaderboardEntry, Player
from taxrunner.utils.validators import validate_score

logger = logging.getLogger(__name__)


class Epoch:
    """One calendar day's leaderboard"""

    def __init__(self, key: str):
        self.key = key
        self.entries: Dict[str, LeaderboardEntry] = {}
        self.closed = False

    def __len__(self):
        return len(self.entries)

    def get(self, player_id: str) -> Optional[LeaderboardEntry]:
        return self.entries.get(player_id)

    def top(self) -> Optional[LeaderboardEntry]:
        """Highest score; the first one recorded wins a tie"""
        if not self.entries:
            return None
        return max(self.entries.values(), key=lambda e: e.score)

    def ranked(self) -> List[LeaderboardEntry]:
        # sorted() is stable, so equal scores keep insertion order
        return sorted(self.entries.values(), key=lambda e: e.score, reverse=True)


class LeaderboardStore:
    """Per-epoch best scores; exactly one epoch is open at a time"""

    def __init__(self, current_key: str, retention: int = 30):
        self.retention = retention
        self.epochs: 'OrderedDict[str, Epoch]' = OrderedDict()
        self.current = Epoch(current_key)
        self.epochs[current_key] = self.current

    @property
    def current_key(self) -> str:
        return self.current.key

    def epoch(self, key: str) -> Optional[Epoch]:
        return self.epochs.get(key)

    def record_score(self, player: Player, raw_score) -> int:
        """Raise the player's best score in the open epoch and return it"""
        score = validate_score(raw_score)
        entry = self.current.get(player.player_id)

        if entry is None:
            entry = LeaderboardEntry(player.player_id, player.name, score)
            self.current.entries[player.player_id] = entry
        elif score > entry.score:
            entry.score = score

        entry.name = player.name
        return entry.score

    def top_entries(self, limit: int = 100) -> List[LeaderboardEntry]:
        return self.current.ranked()[:limit]

    def entries_for(self, key: str) -> List[LeaderboardEntry]:
        epoch = self.epochs.get(key)
        if not epoch:
            return []
        return [entry.copy() for entry in epoch.entries.values()]

    def reset_current(self) -> int:
        cleared = len(self.current)
        self.current.entries.clear()
        return cleared

    def carry_over(self, entry: LeaderboardEntry, name: str = None) -> LeaderboardEntry:
        """Copy a closed-epoch entry into the open epoch"""
        carried = LeaderboardEntry(entry.player_id, name or entry.name, entry.score)
        self.current.entries[entry.player_id] = carried
        return carried

    def open_epoch(self, key: str) -> Epoch:
        """Close the current epoch and make ``key`` the open one"""
        self.current.closed = True
        epoch = self.epochs.get(key)
        if epoch is None:
            epoch = Epoch(key)
            self.epochs[key] = epoch
        epoch.closed = False
        self.current = epoch
        self._evict()
        return epoch

    def _evict(self):
        closed = [key for key, epoch in self.epochs.items() if epoch.closed]
        for key in sorted(closed)[:max(0, len(closed) - self.retention)]:
            del self.epochs[key]
            logger.info(f"Evicted closed leaderboard {key}")
