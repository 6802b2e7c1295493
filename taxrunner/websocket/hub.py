import logging
import threading
from typing import Dict, List

logger = logging.getLogger(__name__)


class BroadcastHub:
    """Fan-out of named events to connected real-time clients.

    One sink per player id: a reconnect replaces the previous sink. Delivery is
    best-effort; events published while a client is disconnected are lost.
    ``emitter`` is anything with Flask-SocketIO's ``emit(event, data, to=...)``.
    """

    def __init__(self, emitter=None):
        self.emitter = emitter
        self.sinks: Dict[str, str] = {}
        self._lock = threading.Lock()

    def __len__(self):
        return len(self.sinks)

    def register(self, player_id: str, sid: str) -> None:
        with self._lock:
            previous = self.sinks.get(player_id)
            self.sinks[player_id] = sid
        if previous and previous != sid:
            logger.info(f"Player {player_id} reconnected, replacing previous connection")

    def unregister(self, player_id: str, sid: str) -> bool:
        """Drop the sink, unless a newer connection already replaced it"""
        with self._lock:
            if self.sinks.get(player_id) != sid:
                return False
            del self.sinks[player_id]
            return True

    def is_connected(self, player_id: str) -> bool:
        return player_id in self.sinks

    def connected_ids(self) -> List[str]:
        with self._lock:
            return list(self.sinks)

    def send_to(self, player_id: str, event: str, payload: dict = None) -> bool:
        sid = self.sinks.get(player_id)
        if not sid:
            return False
        return self._emit(player_id, sid, event, payload or {})

    def broadcast(self, event: str, payload: dict = None) -> int:
        with self._lock:
            targets = list(self.sinks.items())

        delivered = 0
        for player_id, sid in targets:
            if self._emit(player_id, sid, event, payload or {}):
                delivered += 1
        return delivered

    def _emit(self, player_id: str, sid: str, event: str, payload: dict) -> bool:
        if self.emitter is None:
            return False
        try:
            self.emitter.emit(event, payload, to=sid)
            return True
        except Exception as e:
            logger.error(f"Error sending {event} to {player_id}: {str(e)}")
            return False
