import logging
import math
import statistics
from typing import List, Optional

from taxrunner.database.models import Run
from taxrunner.utils.exceptions import NoActiveRun, TooFast, UnnaturalRhythm

logger = logging.getLogger(__name__)


class AntiCheatSystem:
    """Heuristic gate for score submissions from non-admin players.

    A submission must reference a run the player started, must not claim more
    points than the run's duration allows, and, when the client reports its
    jump timings, must not show a machine-regular rhythm.
    """

    def __init__(self, min_seconds: float = 8, points_per_second: float = 6,
                 grace_seconds: float = 2, min_samples: int = 10, min_stddev: float = 50):
        self.min_seconds = min_seconds
        self.points_per_second = points_per_second
        self.grace_seconds = grace_seconds
        self.min_samples = min_samples
        self.min_stddev = min_stddev

    def required_seconds(self, score: float) -> float:
        return max(score / self.points_per_second, self.min_seconds)

    def calculate_rhythm_stddev(self, intervals: List[float]) -> Optional[float]:
        """Population stddev of the jump intervals, None if the sample is too small"""
        if not intervals or len(intervals) < self.min_samples:
            return None
        return statistics.pstdev(intervals)

    def validate_run(self, run: Optional[Run], player_id: str, elapsed: float, score: float,
                     intervals: Optional[List[float]] = None) -> None:
        """Raise an AntiCheatRejected subclass if the submission fails a rule"""
        if run is None or run.player_id != player_id:
            raise NoActiveRun('no-active-run', "No active run")

        required = self.required_seconds(score)
        if elapsed + self.grace_seconds < required:
            logger.warning(f"Too fast submission from {player_id}: score {score} "
                           f"in {elapsed:.1f}s (need {required:.1f}s)")
            raise TooFast('too-fast', "Too fast", need=math.ceil(required), elapsed=math.floor(elapsed))

        stddev = self.calculate_rhythm_stddev(intervals)
        if stddev is not None and stddev < self.min_stddev:
            logger.warning(f"Unnatural rhythm from {player_id}: stddev {stddev:.2f} "
                           f"over {len(intervals)} jumps")
            raise UnnaturalRhythm('unnatural-rhythm', "Unnatural rhythm")
