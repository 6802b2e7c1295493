# config.py
import os
import json
import urllib.parse
import logging
import pytz
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_ITEM_PRICES = {
    'FLASHBANG': 10,
    'RESET_LEADERBOARD': 50,
    'SAVE_FROM_RESET': 25,
    'SAVE_FROM_FLASHBANGS': 15,
}

# Load environment variables
load_dotenv()


class Config:

    def __init__(self, overrides=None):
        # Core configuration
        self.ENV = os.getenv('ENV', 'production')
        self.PORT = int(os.getenv('PORT', 3000))
        self.HOST = os.getenv('HOST', '0.0.0.0')
        self.ADMIN_KEY = os.getenv('ADMIN_KEY', 'dev-key')
        self.CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

        # Daily epoch
        self.TIMEZONE = os.getenv('TIMEZONE', 'Europe/Zagreb')
        self.ROLLOVER_INTERVAL = int(os.getenv('ROLLOVER_INTERVAL', 1))  # seconds
        self.EPOCH_RETENTION = int(os.getenv('EPOCH_RETENTION', 30))  # closed days kept in memory

        # Economy
        self.PRIZE_AMOUNT = float(os.getenv('PRIZE_AMOUNT', 100))
        self.STARTING_CREDITS = int(os.getenv('STARTING_CREDITS', 100))
        self.ADMIN_CREDITS = int(os.getenv('ADMIN_CREDITS', 9999))
        self.ITEM_PRICES = self.parse_item_prices(os.getenv('ITEM_PRICES'))
        self.RESET_COOLDOWN_SECONDS = int(os.getenv('RESET_COOLDOWN_SECONDS', 300))
        self.FLASHBANG_MAX_TARGETS = int(os.getenv('FLASHBANG_MAX_TARGETS', 50))
        self.PAYMENTS_ENABLED = False

        # Anti-cheat
        self.RUN_TTL_SECONDS = int(os.getenv('RUN_TTL_SECONDS', 3600))
        self.MIN_RUN_SECONDS = 8
        self.POINTS_PER_SECOND = 6
        self.GRACE_SECONDS = 2
        self.MIN_RHYTHM_SAMPLES = 10
        self.MIN_RHYTHM_STDDEV = 50  # same unit as the submitted intervals (ms)

        # Leaderboard
        self.LEADERBOARD_LIMIT = 100
        self.NAME_MAX_LENGTH = 16
        self.WINNERS_DEFAULT_LIMIT = 7
        self.WINNERS_MAX_LIMIT = 30

        # Persistence
        self.SNAPSHOT_PATH = os.getenv('SNAPSHOT_PATH', 'players.json')
        self.SNAPSHOT_INTERVAL = int(os.getenv('SNAPSHOT_INTERVAL', 30))  # seconds
        raw_uri = os.getenv('MONGO_URI')
        self.MONGO_URI = self.encode_mongo_uri(raw_uri.strip()) if raw_uri else None
        self.MONGO_DB_NAME = os.getenv('MONGO_DB_NAME', 'taxrunner')

        # Background jobs are disabled for tests and one-off scripts
        self.START_SCHEDULER = os.getenv('START_SCHEDULER', 'true').lower() == 'true'

        # Logging
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
        self.LOG_FILE = os.getenv('LOG_FILE')

        for key, value in (overrides or {}).items():
            setattr(self, key, value)

    def parse_item_prices(self, prices_str):
        """Parse item prices from environment variable"""
        if not prices_str:
            return dict(DEFAULT_ITEM_PRICES)

        try:
            prices = json.loads(prices_str)
            return {str(item): int(price) for item, price in prices.items()}
        except (json.JSONDecodeError, AttributeError, TypeError, ValueError):
            logger.warning("Invalid ITEM_PRICES format, using defaults")
            return dict(DEFAULT_ITEM_PRICES)

    def encode_mongo_uri(self, uri):
        """Encode special characters in MongoDB URI"""
        if "://" not in uri:
            return uri

        protocol, auth_host = uri.split("://", 1)

        if "@" in auth_host:
            auth, host = auth_host.split("@", 1)
            if ":" in auth:
                user, password = auth.split(":", 1)
                # Encode special characters in password
                password = urllib.parse.quote_plus(urllib.parse.unquote_plus(password))
                auth = f"{user}:{password}"
            return f"{protocol}://{auth}@{host}"
        return uri

    def validate(self):
        """Reject settings the server cannot run with"""
        if self.ROLLOVER_INTERVAL <= 0:
            raise ValueError("ROLLOVER_INTERVAL must be positive")
        if self.SNAPSHOT_INTERVAL <= 0:
            raise ValueError("SNAPSHOT_INTERVAL must be positive")
        if self.EPOCH_RETENTION < 1:
            raise ValueError("EPOCH_RETENTION must be at least 1")
        if self.TIMEZONE not in pytz.all_timezones_set:
            raise ValueError(f"Unknown TIMEZONE: {self.TIMEZONE}")
        if self.ENV == 'production' and self.ADMIN_KEY == 'dev-key':
            logger.warning("ADMIN_KEY is the development default")

    def log_config_summary(self):
        """Log a secure summary of the configuration"""
        logger.info("Configuration Summary:")
        logger.info(f"Environment: {self.ENV}")
        logger.info(f"Timezone: {self.TIMEZONE}")
        logger.info(f"Daily prize: {self.PRIZE_AMOUNT}")
        logger.info(f"Snapshot: {'MongoDB ' + self.MONGO_DB_NAME if self.MONGO_URI else self.SNAPSHOT_PATH}")
        logger.info(f"Admin key: {self.secure_mask(self.ADMIN_KEY, 2, 2)}")

    def secure_mask(self, value, show_first=6, show_last=4):
        """Mask sensitive information for logging"""
        if not value or len(value) < (show_first + show_last):
            return "[REDACTED]"
        return f"{value[:show_first]}...{value[-show_last:]}"


# Create singleton instance
config = Config()
