"""
Result cache for accepted workout documents.

Keyed by a fingerprint of the normalized request. Values are stored as JSON
text so a cache hit returns exactly what was stored. Stores share one small
interface (get/set/delete) and can be swapped without touching the generator.
"""

import hashlib
import json
import logging
import os
import sqlite3
import threading
import time
from contextlib import contextmanager

from workout_generator.models import request_to_dict


logger = logging.getLogger(__name__)


def _normalized_list(values):
    return sorted(str(value).strip().lower() for value in values if str(value).strip())


def fingerprint_request(request, model_name=""):
    """
    Stable hash of a request.

    List fields are order-insensitive and case-insensitive; the model name is
    part of the key so switching models never serves stale plans.
    """
    data = request_to_dict(request)
    normalized = {
        "model": model_name,
        "experience": data["experience"],
        "goals": _normalized_list(data["goals"]),
        "equipment": _normalized_list(data["equipment"]),
        "workout_type": data["workout_type"].strip().lower(),
        "duration": int(data["duration"]),
        "injuries": _normalized_list(data["injuries"]),
        "injury_notes": data["injury_notes"].strip(),
        "target_intensity": (
            round(data["target_intensity"], 2) if data["target_intensity"] is not None else None
        ),
        "progression_note": data["progression_note"].strip(),
        "preference_notes": data["preference_notes"].strip(),
        "recent_exercises": _normalized_list(
            name for workout in request.recent_workouts for name in workout.exercise_names
        ),
    }
    encoded = json.dumps(normalized, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class MemoryCacheStore:
    """Process-local store."""

    def __init__(self):
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            return self._entries.get(key)

    def set(self, key, value, stored_at):
        with self._lock:
            self._entries[key] = (value, stored_at)

    def delete(self, key):
        with self._lock:
            self._entries.pop(key, None)

    def purge(self, stored_before):
        """Drop entries stored at or before the cutoff. Returns how many went."""
        with self._lock:
            stale = [key for key, (_, stored_at) in self._entries.items() if stored_at <= stored_before]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def __len__(self):
        with self._lock:
            return len(self._entries)


class SQLiteCacheStore:
    """Store backed by a SQLite file so entries survive restarts."""

    def __init__(self, db_path):
        self.db_path = db_path
        parent = os.path.dirname(db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)

        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self.init_schema()

    def close(self):
        self.conn.close()

    @contextmanager
    def transaction(self):
        """Context manager for atomic write operations."""
        with self._lock:
            try:
                yield
                self.conn.commit()
            except Exception:
                self.conn.rollback()
                raise

    def init_schema(self):
        with self.transaction():
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS generation_cache (
                    cache_key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    stored_at REAL NOT NULL
                )
                """
            )

    def get(self, key):
        with self._lock:
            row = self.conn.execute(
                "SELECT value, stored_at FROM generation_cache WHERE cache_key = ?",
                (key,),
            ).fetchone()
        if row is None:
            return None
        return row["value"], row["stored_at"]

    def set(self, key, value, stored_at):
        with self.transaction():
            self.conn.execute(
                "INSERT OR REPLACE INTO generation_cache (cache_key, value, stored_at) VALUES (?, ?, ?)",
                (key, value, stored_at),
            )

    def delete(self, key):
        with self.transaction():
            self.conn.execute("DELETE FROM generation_cache WHERE cache_key = ?", (key,))

    def purge(self, stored_before):
        with self.transaction():
            cursor = self.conn.execute("DELETE FROM generation_cache WHERE stored_at <= ?", (stored_before,))
        return cursor.rowcount

    def __len__(self):
        with self._lock:
            return self.conn.execute("SELECT COUNT(*) FROM generation_cache").fetchone()[0]


class ResultCache:
    """TTL cache over a store. Concurrent misses for one key may both compute."""

    def __init__(self, store, ttl_seconds, clock=time.time):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def has_expired(self, stored_at):
        return self.clock() - stored_at >= self.ttl_seconds

    def get(self, key):
        entry = self.store.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        if self.has_expired(stored_at):
            self.store.delete(key)
            return None
        return json.loads(value)

    def set(self, key, value):
        """Store a value and sweep every expired entry so the store stays bounded by the TTL."""
        serialized = json.dumps(value, sort_keys=True)
        now = self.clock()
        self.store.purge(now - self.ttl_seconds)
        self.store.set(key, serialized, now)
        return serialized

    def get_cached_or_run(self, key, compute):
        """
        Return the cached value for key, or compute, store and return it.

        Exceptions from compute propagate and nothing is stored.
        """
        cached = self.get(key)
        if cached is not None:
            logger.info("Cache hit", extra={"event": "cache_hit", "cache_key": key[:12]})
            return cached

        logger.info("Cache miss", extra={"event": "cache_miss", "cache_key": key[:12]})
        value = compute()
        serialized = self.set(key, value)
        logger.info("Cached generation result", extra={"event": "cache_store", "cache_key": key[:12]})
        return json.loads(serialized)


def build_cache(config):
    """ResultCache from the cache config block, or None when disabled."""
    cache_config = config["cache"]
    if not cache_config.get("enabled"):
        return None

    if cache_config["backend"] == "sqlite":
        store = SQLiteCacheStore(cache_config["path"])
    else:
        store = MemoryCacheStore()

    return ResultCache(store, ttl_seconds=cache_config["ttl_hours"] * 3600)
