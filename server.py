import atexit
import logging

from app import create_app
from config import config
from taxrunner.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def shutdown(app):
    """Graceful shutdown: stop background jobs and write a final snapshot"""
    logger.info("🛑 Shutting down")
    app.scheduler.stop()
    try:
        app.extensions['taxrunner'].save_snapshot()
        logger.info("✅ Final snapshot written")
    except Exception as e:
        logger.error(f"❌ Final snapshot failed: {e}")


def main():
    setup_logging(config.LOG_LEVEL, config.LOG_FILE)
    config.log_config_summary()

    app = create_app()
    atexit.register(shutdown, app)

    debug_mode = config.ENV != 'production'
    logger.info(f"🚀 Starting server on port {config.PORT}")
    logger.info(f"🔧 Debug mode: {'ON' if debug_mode else 'OFF'}")

    app.socketio.run(
        app,
        host=config.HOST,
        port=config.PORT,
        debug=debug_mode,
        use_reloader=False,
        allow_unsafe_werkzeug=True
    )


if __name__ == '__main__':
    main()
