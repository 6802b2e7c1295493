# taxrunner/game_manager.py
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from taxrunner.database.models import LeaderboardEntry, Player, Run, WinnerRecord
from taxrunner.features.leaderboard import LeaderboardStore
from taxrunner.features.players import PlayerRegistry
from taxrunner.features.runs import RunTracker
from taxrunner.features.shop import Shop
from taxrunner.features.winners import WinnerBook
from taxrunner.security.anti_cheat import AntiCheatSystem
from taxrunner.utils.clock import day_key
from taxrunner.utils.exceptions import AuthorizationError
from taxrunner.utils.validators import (
    require_fields, validate_amount, validate_intervals, validate_score
)
from taxrunner.websocket.hub import BroadcastHub

logger = logging.getLogger(__name__)


class GameServer:
    """Owns every piece of shared game state.

    Built once per process and handed to the HTTP routes, the socket handlers
    and the scheduler. Every read-modify-write goes through ``self.lock`` so a
    request never sees a rollover half done.
    """

    def __init__(self, config, hub: BroadcastHub = None, snapshot_store=None, clock=None, rng=None):
        self.config = config
        self.clock = clock or time.time
        self.lock = threading.RLock()
        self._flush_lock = threading.Lock()
        self.snapshot_store = snapshot_store

        self.hub = hub if hub is not None else BroadcastHub()
        self.players = PlayerRegistry(
            starting_credits=config.STARTING_CREDITS,
            admin_credits=config.ADMIN_CREDITS,
            admin_key=config.ADMIN_KEY,
            name_max_length=config.NAME_MAX_LENGTH,
        )
        self.runs = RunTracker(ttl_seconds=config.RUN_TTL_SECONDS)
        self.leaderboard = LeaderboardStore(self.day_key(), retention=config.EPOCH_RETENTION)
        self.winners = WinnerBook()
        self.anti_cheat = AntiCheatSystem(
            min_seconds=config.MIN_RUN_SECONDS,
            points_per_second=config.POINTS_PER_SECOND,
            grace_seconds=config.GRACE_SECONDS,
            min_samples=config.MIN_RHYTHM_SAMPLES,
            min_stddev=config.MIN_RHYTHM_STDDEV,
        )
        self.shop = Shop(
            prices=config.ITEM_PRICES,
            hub=self.hub,
            leaderboard=self.leaderboard,
            reset_cooldown=config.RESET_COOLDOWN_SECONDS,
            max_flashbang_targets=config.FLASHBANG_MAX_TARGETS,
            rng=rng,
        )
        self.prize_amount = config.PRIZE_AMOUNT

    # Clock
    def now(self) -> float:
        return self.clock()

    def utcnow(self) -> datetime:
        return datetime.fromtimestamp(self.now(), timezone.utc)

    def day_key(self, timestamp: float = None) -> str:
        return day_key(self.now() if timestamp is None else timestamp, self.config.TIMEZONE)

    @property
    def current_day(self) -> str:
        return self.leaderboard.current_key

    # Persistence
    def load_snapshot(self) -> int:
        if not self.snapshot_store:
            return 0
        data = self.snapshot_store.load()
        with self.lock:
            return self.players.load(data)

    def save_snapshot(self) -> bool:
        if not self.snapshot_store:
            return False
        with self._flush_lock:
            with self.lock:
                data = self.players.export()
            self.snapshot_store.save(data)
        return True

    # Players
    def register(self, name, admin_key: str = None) -> Player:
        with self.lock:
            return self.players.register(name, admin_key)

    def profile(self, player_id) -> dict:
        with self.lock:
            return self.players.get(player_id).profile(self.current_day)

    def status(self) -> dict:
        return {
            'day': self.current_day,
            'itemPrices': dict(self.shop.prices),
            'prize': self.prize_amount
        }

    # Runs and scores
    def start_run(self, player_id) -> Run:
        with self.lock:
            player = self.players.get(player_id)
            return self.runs.start(player.player_id, self.now())

    def submit_score(self, player_id, score, run_id=None, player_name=None, intervals=None) -> int:
        with self.lock:
            player = self.players.get(player_id)
            validate_score(score)

            if not player.is_admin:
                samples = validate_intervals(intervals)
                run = self.runs.find(run_id, player.player_id)
                elapsed = run.elapsed(self.now()) if run else 0
                self.anti_cheat.validate_run(run, player.player_id, elapsed, score, samples)
                self.runs.consume(run)

            self.players.rename(player, player_name)
            best = self.leaderboard.record_score(player, score)

            self.hub.broadcast('leaderboardUpdated', {
                'playerId': player.player_id,
                'name': player.name,
                'score': best
            })
            return best

    def top_entries(self, limit: int = None) -> List[LeaderboardEntry]:
        with self.lock:
            return [e.copy() for e in self.leaderboard.top_entries(limit or self.config.LEADERBOARD_LIMIT)]

    # Shop
    def purchase(self, player_id, item) -> Player:
        with self.lock:
            player = self.players.get(player_id)
            return self.shop.purchase(player, item)

    def use_item(self, player_id, item) -> dict:
        with self.lock:
            player = self.players.get(player_id)
            return self.shop.use_item(player, item, self.now())

    def claim_grants(self, player_id) -> Dict[str, int]:
        with self.lock:
            return self.shop.claim_grants(player_id)

    def set_drop(self, player_id, amount) -> float:
        with self.lock:
            player = self.players.get(player_id)
            if not player.is_admin:
                raise AuthorizationError('not-admin', "Not admin")
            self.prize_amount = validate_amount(amount)
            logger.info(f"Daily drop set to {self.prize_amount} by {player.player_id}")
            self.hub.broadcast('dropUpdated', {'amount': self.prize_amount})
            return self.prize_amount

    # Winners
    def verify_claim_as_admin(self, key, day, player_id, claim_secret) -> WinnerRecord:
        if not self.players.is_admin_key(key):
            raise AuthorizationError('forbidden', "Forbidden")
        require_fields({'day': day, 'playerId': player_id, 'claimSecret': claim_secret},
                       'day', 'playerId', 'claimSecret')
        with self.lock:
            return self.winners.verify(player_id, claim_secret, day=str(day), now=self.utcnow())

    def verify_claim(self, player_id, claim_code, claim_secret) -> WinnerRecord:
        with self.lock:
            return self.winners.verify(player_id, claim_secret, claim_code=claim_code,
                                        now=self.utcnow())

    def winner_status(self, player_id) -> Optional[dict]:
        with self.lock:
            if not self.players.find(player_id):
                return None
            record = self.winners.latest_for(player_id)
            return record.status() if record else None

    def latest_winner(self) -> Optional[dict]:
        with self.lock:
            record = self.winners.latest()
            return record.to_dict() if record else None

    def recent_winners(self, limit: int) -> List[dict]:
        with self.lock:
            return [record.to_dict() for record in self.winners.recent(limit)]
