import logging
import uuid
from typing import Dict, Optional

from taxrunner.database.models import Run

logger = logging.getLogger(__name__)


class RunTracker:
    """Short-lived run records; each run id is single-use"""

    def __init__(self, ttl_seconds: int = 3600):
        self.ttl_seconds = ttl_seconds
        self.runs: Dict[str, Run] = {}

    def __len__(self):
        return len(self.runs)

    def start(self, player_id: str, now: float) -> Run:
        run = Run(str(uuid.uuid4()), player_id, now)
        self.runs[run.run_id] = run
        return run

    def find(self, run_id, player_id: str) -> Optional[Run]:
        """Return the run only if it exists and belongs to ``player_id``"""
        if not isinstance(run_id, str):
            return None
        run = self.runs.get(run_id)
        if not run or run.player_id != player_id:
            return None
        return run

    def consume(self, run: Run) -> None:
        self.runs.pop(run.run_id, None)

    def sweep(self, now: float) -> int:
        """Delete runs older than the TTL"""
        cutoff = now - self.ttl_seconds
        expired = [run_id for run_id, run in self.runs.items() if run.started_at < cutoff]
        for run_id in expired:
            del self.runs[run_id]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired runs")
        return len(expired)
