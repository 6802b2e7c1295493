import logging

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from config import Config
from taxrunner.database.snapshot import create_snapshot_store
from taxrunner.game_manager import GameServer
from taxrunner.tasks.scheduled import BackgroundScheduler, EpochRollover
from taxrunner.web.routes import configure_routes
from taxrunner.websocket.events import register_socket_events
from taxrunner.websocket.hub import BroadcastHub

logger = logging.getLogger(__name__)


def create_app(overrides=None, clock=None, snapshot_store=None, rng=None):
    """Application factory pattern"""
    config = Config(overrides)
    config.validate()

    app = Flask(__name__)
    CORS(app, origins=config.CORS_ORIGINS)
    socketio = SocketIO(app, cors_allowed_origins=config.CORS_ORIGINS, async_mode='threading')

    if snapshot_store is None:
        snapshot_store = create_snapshot_store(config)

    server = GameServer(config, hub=BroadcastHub(socketio), snapshot_store=snapshot_store,
                        clock=clock, rng=rng)
    loaded = server.load_snapshot()
    logger.info(f"Game server ready for {server.current_day} with {loaded} players")

    rollover = EpochRollover(server)
    scheduler = BackgroundScheduler(
        server,
        rollover=rollover,
        rollover_interval=config.ROLLOVER_INTERVAL,
        snapshot_interval=config.SNAPSHOT_INTERVAL,
    )

    configure_routes(app, server)
    register_socket_events(socketio, server)

    app.extensions['taxrunner'] = server
    app.socketio = socketio
    app.rollover = rollover
    app.scheduler = scheduler

    if config.START_SCHEDULER:
        scheduler.start()

    return app
