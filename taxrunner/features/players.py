import hmac
import logging
import uuid
from typing import Dict, Iterator, Optional

from taxrunner.database.models import Player
from taxrunner.utils.exceptions import NotFoundError
from taxrunner.utils.validators import validate_name, clean_optional_name

logger = logging.getLogger(__name__)


class PlayerRegistry:
    """Owns player identity, credits and entitlement flags"""

    def __init__(self, starting_credits: int = 100, admin_credits: int = 9999,
                 admin_key: str = None, name_max_length: int = 16):
        self.starting_credits = starting_credits
        self.admin_credits = admin_credits
        self.admin_key = admin_key
        self.name_max_length = name_max_length
        self.players: Dict[str, Player] = {}

    def __len__(self):
        return len(self.players)

    def __iter__(self) -> Iterator[Player]:
        return iter(list(self.players.values()))

    def is_admin_key(self, candidate) -> bool:
        if not self.admin_key or not isinstance(candidate, str) or not candidate:
            return False
        return hmac.compare_digest(candidate.encode(), self.admin_key.encode())

    def register(self, raw_name, admin_key: str = None) -> Player:
        """Create a new player; admin status comes only from the admin key"""
        name = validate_name(raw_name, self.name_max_length)
        is_admin = self.is_admin_key(admin_key)
        player_id = str(uuid.uuid4())

        player = Player(
            player_id=player_id,
            name=name,
            credits=self.admin_credits if is_admin else self.starting_credits,
            is_admin=is_admin,
        )
        self.players[player_id] = player

        logger.info(f"Registered player {player_id} ({name}){' as admin' if is_admin else ''}")
        return player

    def find(self, player_id) -> Optional[Player]:
        if not isinstance(player_id, str):
            return None
        return self.players.get(player_id)

    def get(self, player_id) -> Player:
        player = self.find(player_id)
        if not player:
            raise NotFoundError('invalid-player', "Unknown player")
        return player

    def rename(self, player: Player, raw_name) -> bool:
        """Apply an optional rename; invalid names are ignored"""
        name = clean_optional_name(raw_name, self.name_max_length)
        if name is None or name == player.name:
            return False
        player.name = name
        return True

    def export(self) -> Dict[str, dict]:
        return {player_id: player.to_dict() for player_id, player in self.players.items()}

    def load(self, data: Dict[str, dict]) -> int:
        loaded = 0
        for player_id, doc in data.items():
            try:
                self.players[player_id] = Player.from_dict(player_id, doc)
                loaded += 1
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping unreadable player record {player_id}: {e}")
        return loaded
