# taxrunner/features/shop.py
import logging
import math
import random
from typing import Dict

from taxrunner.database.models import Player
from taxrunner.features.leaderboard import LeaderboardStore
from taxrunner.utils.clock import now_ms
from taxrunner.utils.exceptions import RateLimited, ValidationError
from taxrunner.websocket.hub import BroadcastHub

logger = logging.getLogger(__name__)

FLASHBANG = 'FLASHBANG'
RESET_LEADERBOARD = 'RESET_LEADERBOARD'
SAVE_FROM_RESET = 'SAVE_FROM_RESET'
SAVE_FROM_FLASHBANGS = 'SAVE_FROM_FLASHBANGS'


class Shop:
    """Item purchases, item use and pending entitlement grants"""

    def __init__(self, prices: Dict[str, int], hub: BroadcastHub, leaderboard: LeaderboardStore,
                 reset_cooldown: float = 300, max_flashbang_targets: int = 50, rng=None):
        self.prices = dict(prices)
        self.hub = hub
        self.leaderboard = leaderboard
        self.reset_cooldown = reset_cooldown
        self.max_flashbang_targets = max_flashbang_targets
        self.rng = rng or random.Random()
        self.pending_grants: Dict[str, Dict[str, int]] = {}
        self.last_manual_reset = None

    def purchase(self, player: Player, item) -> Player:
        price = self.prices.get(item) if isinstance(item, str) else None
        if not price:
            raise ValidationError('invalid-item', "Invalid item")
        if player.credits < price:
            raise ValidationError('not-enough-credits', "Not enough credits")

        player.credits -= price

        if item == SAVE_FROM_RESET:
            player.save_from_reset += 1
        elif item == SAVE_FROM_FLASHBANGS:
            player.flash_shield_active = True  # one-way

        logger.info(f"Player {player.player_id} bought {item} for {price}")
        self.queue_grant(player.player_id, item)
        return player

    def queue_grant(self, player_id: str, item: str, count: int = 1) -> None:
        grants = self.pending_grants.setdefault(player_id, {})
        grants[item] = grants.get(item, 0) + count
        self.hub.send_to(player_id, 'purchaseCompleted', {'item': item, 'count': count})

    def claim_grants(self, player_id) -> Dict[str, int]:
        """Return and clear every pending grant for the player"""
        if not isinstance(player_id, str):
            return {}
        return self.pending_grants.pop(player_id, {})

    def use_item(self, player: Player, item, now: float) -> dict:
        if item == FLASHBANG:
            targets = self.flashbang(player, now)
            return {'ok': True, 'targets': targets}
        if item == RESET_LEADERBOARD:
            self.manual_reset(player, now)
            return {'ok': True}
        raise ValidationError('item-not-usable', "Item cannot be used or not implemented")

    def flashbang(self, player: Player, now: float) -> int:
        pool = [pid for pid in self.hub.connected_ids() if pid != player.player_id]
        self.rng.shuffle(pool)
        targets = pool[:self.max_flashbang_targets]

        payload = {'by': player.player_id, 'ts': now_ms(now)}
        for target in targets:
            self.hub.send_to(target, 'flashbang', payload)

        logger.info(f"Player {player.player_id} flashbanged {len(targets)} players")
        return len(targets)

    def reset_seconds_left(self, now: float) -> int:
        if self.last_manual_reset is None:
            return 0
        remaining = self.reset_cooldown - (now - self.last_manual_reset)
        return max(0, math.ceil(remaining))

    def manual_reset(self, player: Player, now: float) -> None:
        seconds_left = self.reset_seconds_left(now)
        if seconds_left > 0:
            raise RateLimited('RESET_COOLDOWN', "Reset on cooldown", secondsLeft=seconds_left)

        self.last_manual_reset = now
        cleared = self.leaderboard.reset_current()
        day = self.leaderboard.current_key
        logger.info(f"Player {player.player_id} reset the {day} leaderboard ({cleared} entries)")
        self.hub.broadcast('forceReset', {'manual': True, 'newDay': day})
