import logging
import threading
import time

import schedule

logger = logging.getLogger(__name__)


class EpochRollover:
    """Drives the daily transition from one leaderboard to the next.

    ``tick`` runs every second. While the day key is unchanged it only sweeps
    stale runs. When the key changes it closes the old board, issues the
    winner's claim, carries saved scores over, opens the new board and tells
    every client, all under the game server lock.
    """

    def __init__(self, server):
        self.server = server

    def tick(self, now: float = None) -> bool:
        server = self.server
        now = server.now() if now is None else now

        with server.lock:
            server.runs.sweep(now)
            new_day = server.day_key(now)
            if new_day == server.current_day:
                return False
            self.roll_over(new_day)
            return True

    def roll_over(self, new_day: str) -> None:
        server = self.server
        prev_day = server.current_day
        logger.info(f"Rolling leaderboard over from {prev_day} to {new_day}")

        closing = server.leaderboard.epoch(prev_day)
        top = closing.top() if closing else None
        if top is not None:
            self.award_winner(prev_day, top)

        carried_entries = []
        for player in server.players:
            if player.save_from_reset <= 0:
                continue
            entry = closing.get(player.player_id) if closing else None
            if entry and entry.score > 0:
                carried_entries.append((player, entry))

        server.leaderboard.open_epoch(new_day)

        for player, entry in carried_entries:
            server.leaderboard.carry_over(entry, name=player.name)
            player.save_from_reset -= 1
            logger.info(f"Carried {entry.score} for {player.player_id} into {new_day} "
                        f"({player.save_from_reset} saves left)")

        server.hub.broadcast('forceReset', {'newDay': new_day})

    def award_winner(self, day: str, entry) -> None:
        server = self.server
        created = server.winners.create(day, entry, server.prize_amount)
        if created is None:
            return

        record, claim_secret = created
        delivered = server.hub.send_to(record.player_id, 'youWon', {
            'day': day,
            'claimCode': record.claim_code,
            'claimSecret': claim_secret,
            'prize': record.prize
        })
        if not delivered:
            logger.warning(f"Winner {record.player_id} for {day} was not connected; "
                           f"claim secret could not be delivered")


class BackgroundScheduler:
    """Runs the rollover check and the snapshot flush on a daemon thread"""

    def __init__(self, server, rollover: EpochRollover = None, rollover_interval: int = 1,
                 snapshot_interval: int = 30, poll_interval: float = 0.2):
        self.server = server
        self.rollover = rollover if rollover is not None else EpochRollover(server)
        self.poll_interval = poll_interval
        self.scheduler = schedule.Scheduler()
        self.scheduler.every(rollover_interval).seconds.do(self.check_epoch)
        self.scheduler.every(snapshot_interval).seconds.do(self.flush_snapshot)
        self._stop = threading.Event()
        self._thread = None

    def check_epoch(self):
        try:
            self.rollover.tick()
        except Exception as e:
            logger.exception(f"Critical error in epoch check: {str(e)}")

    def flush_snapshot(self):
        try:
            self.server.save_snapshot()
        except Exception as e:
            logger.exception(f"Snapshot flush failed: {str(e)}")

    def run(self):
        while not self._stop.is_set():
            self.scheduler.run_pending()
            time.sleep(self.poll_interval)

    def start(self):
        if self._thread and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, daemon=True, name="EpochScheduler")
        self._thread.start()
        logger.info(f"Epoch scheduler started (Thread ID: {self._thread.ident})")
        return self._thread

    def stop(self, timeout: float = 5):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
        self.scheduler.clear()
        logger.info("Epoch scheduler stopped")
