# taxrunner/database/snapshot.py
"""Player registry snapshots.

The registry is persisted as an opaque key-value document keyed by player id.
Two backends exist: a JSON file (the default) and a MongoDB collection used
when ``MONGO_URI`` is configured. Both expose ``load() -> dict`` and
``save(dict)``.
"""
import json
import logging
import os
import tempfile
from typing import Any, Dict

from pymongo import MongoClient
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class JsonSnapshotStore:
    def __init__(self, path: str):
        self.path = path

    def load(self) -> Dict[str, Dict[str, Any]]:
        if not os.path.exists(self.path):
            logger.info(f"No snapshot at {self.path}, starting empty")
            return {}

        with open(self.path, 'r', encoding='utf-8') as fh:
            data = json.load(fh)

        if not isinstance(data, dict):
            raise ValueError(f"Snapshot {self.path} is not a JSON object")
        logger.info(f"Loaded {len(data)} players from {self.path}")
        return data

    def save(self, players: Dict[str, Dict[str, Any]]) -> None:
        # Write to a temp file and swap so a crash never leaves half a document
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(players, fh, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


class MongoSnapshotStore:
    def __init__(self, db, collection: str = 'players'):
        self.collection = db[collection]
        self.collection.create_index('player_id', unique=True)

    @classmethod
    def from_uri(cls, uri: str, db_name: str) -> 'MongoSnapshotStore':
        client = MongoClient(uri)
        store = cls(client[db_name])
        logger.info(f"✅ MongoDB snapshot store ready ({db_name})")
        return store

    def load(self) -> Dict[str, Dict[str, Any]]:
        players = {}
        for doc in self.collection.find({}, {'_id': 0}):
            player_id = doc.pop('player_id')
            players[player_id] = doc
        logger.info(f"Loaded {len(players)} players from MongoDB")
        return players

    def save(self, players: Dict[str, Dict[str, Any]]) -> None:
        if not players:
            return
        try:
            for player_id, doc in players.items():
                self.collection.replace_one(
                    {'player_id': player_id},
                    {'player_id': player_id, **doc},
                    upsert=True
                )
        except PyMongoError as e:
            logger.error(f"MongoDB snapshot write failed: {str(e)}")
            raise


def create_snapshot_store(config):
    """Pick the snapshot backend for the given configuration"""
    if config.MONGO_URI:
        return MongoSnapshotStore.from_uri(config.MONGO_URI, config.MONGO_DB_NAME)
    return JsonSnapshotStore(config.SNAPSHOT_PATH)
