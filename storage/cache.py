"""
SQLite cache of completed Jenkins build records.
Finished builds never change, so history walks over earlier runs can be served locally.
"""

import sqlite3
import json
import time
from typing import Optional, Any, Dict
import threading


# noinspection SqlResolve
SQL_CREATE = """
CREATE TABLE IF NOT EXISTS build_cache (
    url TEXT PRIMARY KEY,
    record TEXT,
    timestamp REAL
);
"""


class BuildCache:
    def __init__(self, path: Optional[str] = None, max_entries: Optional[int] = None, ttl_seconds: Optional[float] = None):
        """Create a cache instance.

        :param path: SQLite file path or None for in-memory.
        :param max_entries: optional maximum number of records to keep; oldest records are pruned first.
        :param ttl_seconds: optional TTL in seconds; older records are ignored on read and pruned on write.
        """
        self.path = path or ':memory:'
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self._lock = threading.RLock()
        self.max_entries = int(max_entries) if max_entries is not None else None
        self.ttl_seconds = float(ttl_seconds) if ttl_seconds is not None else None
        with self._lock:
            self.conn.executescript(SQL_CREATE)
            self.conn.commit()

    def close(self):
        with self._lock:
            if self.conn is not None:
                try:
                    self.conn.close()
                finally:
                    self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # noinspection SqlResolve
    def get(self, url: str) -> Optional[Dict[str, Any]]:
        """Return the cached build record for url, or None on a miss or expired record."""
        with self._lock:
            cur = self.conn.execute('SELECT record, timestamp FROM build_cache WHERE url = ?', (url,))
            row = cur.fetchone()
        if not row:
            return None
        record, timestamp = row
        if self.ttl_seconds is not None and time.time() - float(timestamp or 0) > self.ttl_seconds:
            self.delete(url)
            return None
        return json.loads(record)

    # noinspection SqlResolve
    def put(self, url: str, record: Dict[str, Any]):
        """Store a build record. Records of builds still in progress (result is null) are refused."""
        if record.get('result') is None:
            return False
        with self._lock:
            self.conn.execute('REPLACE INTO build_cache(url, record, timestamp) VALUES (?, ?, ?)', (url, json.dumps(record), time.time()))
            self.conn.commit()
            self._prune_if_needed()
        return True

    # noinspection SqlResolve
    def delete(self, url: str) -> int:
        with self._lock:
            cur = self.conn.execute('DELETE FROM build_cache WHERE url = ?', (url,))
            self.conn.commit()
            return cur.rowcount

    # noinspection SqlWithoutWhere
    def clear(self):
        with self._lock:
            self.conn.execute('DELETE FROM build_cache')
            self.conn.commit()

    # noinspection SqlResolve
    def count(self) -> int:
        with self._lock:
            return int(self.conn.execute('SELECT COUNT(1) FROM build_cache').fetchone()[0] or 0)

    # noinspection SqlResolve
    def _prune_if_needed(self):
        """Prune records based on TTL and max_entries settings."""
        with self._lock:
            if self.ttl_seconds is not None:
                cutoff = time.time() - self.ttl_seconds
                self.conn.execute('DELETE FROM build_cache WHERE timestamp < ?', (cutoff,))
            if self.max_entries is not None:
                excess = self.count() - self.max_entries
                if excess > 0:
                    self.conn.execute(
                        'DELETE FROM build_cache WHERE url IN (SELECT url FROM build_cache ORDER BY timestamp ASC LIMIT ?)',
                        (excess,),
                    )
            self.conn.commit()


__all__ = ["BuildCache"]
