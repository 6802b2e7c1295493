import logging
import threading
import uuid

from flask import request
from flask_socketio import emit

logger = logging.getLogger(__name__)


def register_socket_events(socketio, server):
    """Wire Socket.IO connection lifecycle to the broadcast hub"""
    hub = server.hub
    connections = {}  # sid -> player id
    connections_lock = threading.Lock()

    @socketio.on('connect')
    def on_connect(auth=None):
        player_id = request.args.get('playerId') or uuid.uuid4().hex[:12]
        if isinstance(auth, dict) and auth.get('playerId'):
            player_id = str(auth['playerId'])

        with connections_lock:
            connections[request.sid] = player_id
        hub.register(player_id, request.sid)

        emit('hello', {'ok': True, 'day': server.current_day, 'playerId': player_id}, to=request.sid)
        logger.debug(f"Player {player_id} connected ({request.sid})")

    @socketio.on('disconnect')
    def on_disconnect(*args):
        with connections_lock:
            player_id = connections.pop(request.sid, None)
        if player_id is not None:
            hub.unregister(player_id, request.sid)
            logger.debug(f"Player {player_id} disconnected ({request.sid})")

    return connections
