from datetime import datetime
from typing import Any, Dict, Optional


class Player:
    def __init__(self, player_id: str, name: str, credits: int = 0,
                 flash_shield_active: bool = False, save_from_reset: int = 0,
                 is_admin: bool = False, claim_code: str = ''):
        self.player_id = player_id
        self.name = name
        self.credits = credits
        self.flash_shield_active = flash_shield_active
        self.save_from_reset = save_from_reset
        self.is_admin = is_admin
        self.claim_code = claim_code or f"drop-{player_id[:8]}"

    @classmethod
    def from_dict(cls, player_id: str, data: Dict[str, Any]) -> 'Player':
        """Build a player from a snapshot document"""
        return cls(
            player_id=player_id,
            name=str(data.get('name', '')),
            credits=max(0, int(data.get('credits', 0))),
            flash_shield_active=bool(data.get('flashShieldActive', False)),
            save_from_reset=max(0, int(data.get('saveFromReset', 0))),
            is_admin=bool(data.get('isAdmin', False)),
            claim_code=data.get('claimCode', ''),
        )

    def to_dict(self):
        return {
            'name': self.name,
            'credits': self.credits,
            'flashShieldActive': self.flash_shield_active,
            'saveFromReset': self.save_from_reset,
            'isAdmin': self.is_admin,
            'claimCode': self.claim_code
        }

    def profile(self, day: str):
        return {
            'playerId': self.player_id,
            'name': self.name,
            'credits': self.credits,
            'flashShieldActive': self.flash_shield_active,
            'saveFromReset': self.save_from_reset,
            'day': day
        }


class Run:
    def __init__(self, run_id: str, player_id: str, started_at: float):
        self.run_id = run_id
        self.player_id = player_id
        self.started_at = started_at

    def elapsed(self, now: float) -> float:
        return now - self.started_at


class LeaderboardEntry:
    def __init__(self, player_id: str, name: str, score: int):
        self.player_id = player_id
        self.name = name
        self.score = score

    def copy(self) -> 'LeaderboardEntry':
        return LeaderboardEntry(self.player_id, self.name, self.score)

    def to_dict(self):
        return {
            'playerId': self.player_id,
            'name': self.name,
            'score': self.score
        }


class WinnerRecord:
    def __init__(self, day: str, player_id: str, name: str, score: int, prize: float,
                 claim_code: str, claim_hash: str):
        self.day = day
        self.player_id = player_id
        self.name = name
        self.score = score
        self.prize = prize
        self.paid = False
        self.verified = False
        self.claim_code = claim_code
        self.claim_hash = claim_hash
        self.verified_at: Optional[datetime] = None

    def to_dict(self):
        """Public view; the claim hash is never included"""
        return {
            'day': self.day,
            'playerId': self.player_id,
            'name': self.name,
            'score': self.score,
            'prize': self.prize,
            'paid': self.paid,
            'verified': self.verified,
            'claimCode': self.claim_code,
            'verifiedAt': self.verified_at.isoformat() if self.verified_at else None
        }

    def status(self):
        return {
            'day': self.day,
            'prize': self.prize,
            'verified': self.verified,
            'paid': self.paid
        }
