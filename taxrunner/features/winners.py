import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from taxrunner.database.models import LeaderboardEntry, WinnerRecord
from taxrunner.utils.exceptions import InvalidClaim, NotFoundError

logger = logging.getLogger(__name__)


def hash_secret(secret) -> str:
    return hashlib.sha256(str(secret).encode()).hexdigest()


def generate_claim() -> Tuple[str, str]:
    """Return a (secret, claim code) pair"""
    claim_secret = secrets.token_hex(32)
    claim_code = 'win-' + secrets.token_hex(8)
    return claim_secret, claim_code


class WinnerBook:
    """Winner records of closed epochs and the claim verification protocol.

    Only the SHA-256 hash of each claim secret is stored. The secret itself is
    handed back once from ``create`` so the caller can deliver it to the
    winner; after that nobody, including this process, can recover it.
    """

    def __init__(self):
        self.records: Dict[str, WinnerRecord] = {}

    def __len__(self):
        return len(self.records)

    def get(self, day: str) -> Optional[WinnerRecord]:
        return self.records.get(day)

    def create(self, day: str, entry: LeaderboardEntry, prize: float) -> Optional[Tuple[WinnerRecord, str]]:
        """Create the winner record for ``day``; None if one already exists"""
        if day in self.records:
            logger.warning(f"Winner for {day} already recorded, not re-issuing")
            return None

        claim_secret, claim_code = generate_claim()
        record = WinnerRecord(
            day=day,
            player_id=entry.player_id,
            name=entry.name,
            score=entry.score,
            prize=prize,
            claim_code=claim_code,
            claim_hash=hash_secret(claim_secret),
        )
        self.records[day] = record

        logger.info(f"Winner for {day}: {entry.player_id} ({entry.name}) with {entry.score}")
        return record, claim_secret

    def find_claim(self, player_id: str, claim_code: str) -> Optional[WinnerRecord]:
        for day in sorted(self.records):
            record = self.records[day]
            if record.player_id == player_id and record.claim_code == claim_code:
                return record
        return None

    def verify(self, player_id: str, claim_secret, day: str = None, claim_code: str = None,
               now: datetime = None) -> WinnerRecord:
        """Check a claim secret against the stored hash and mark the win verified.

        The admin path names the ``day``; the self-service path names the
        ``claim_code``. Verifying again with the right secret succeeds again.
        ``paid`` is never touched here.
        """
        if day is not None:
            record = self.records.get(day)
            if not record or record.player_id != player_id:
                raise NotFoundError('not-found', "No winner record for that day and player")
        else:
            record = self.find_claim(player_id, claim_code)
            if not record:
                raise NotFoundError('not-found', "Invalid claim")

        if not hmac.compare_digest(hash_secret(claim_secret), record.claim_hash):
            logger.warning(f"Failed claim verification for {record.day} by {player_id}")
            raise InvalidClaim('invalid-claim', "Invalid verification")

        record.verified = True
        record.verified_at = now or datetime.now(timezone.utc)
        logger.info(f"Claim for {record.day} verified for {player_id}")
        return record

    def latest(self) -> Optional[WinnerRecord]:
        """Most recent day that produced a winner; days without entries are skipped"""
        if not self.records:
            return None
        return self.records[max(self.records)]

    def latest_for(self, player_id: str) -> Optional[WinnerRecord]:
        record = self.latest()
        if not record or record.player_id != player_id:
            return None
        return record

    def recent(self, limit: int) -> List[WinnerRecord]:
        days = sorted(self.records)[-limit:]
        return [self.records[day] for day in days]
