"""
Persistent credential store for the notifier configuration.

Values are kept in a small SQLite table, encrypted with Fernet. The key is read from
CLOUDAEYE_SECRET_KEY or, when that is unset, from a key file next to the database
that is generated on first use.
"""

import logging
import os
import sqlite3
import threading
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from config import NotifierConfig, Secret

logger = logging.getLogger(__name__)

ENV_SECRET_KEY = "CLOUDAEYE_SECRET_KEY"
ENV_CONFIG_DB = "CLOUDAEYE_CONFIG_DB"

TENANT_KEY = "tenant_key"
TOKEN = "token"

# noinspection SqlResolve
SQL_CREATE = """
CREATE TABLE IF NOT EXISTS credentials (
    name TEXT PRIMARY KEY,
    value TEXT
);
"""


def default_store_path() -> str:
    return os.getenv(ENV_CONFIG_DB) or os.path.join(os.path.expanduser("~"), ".cloudaeye", "credentials.db")


def _load_or_create_key(path: str) -> bytes:
    env_key = os.getenv(ENV_SECRET_KEY)
    if env_key:
        return env_key.encode()
    if path == ':memory:':
        return Fernet.generate_key()
    key_path = path + ".key"
    if os.path.exists(key_path):
        with open(key_path, 'rb') as fh:
            return fh.read().strip()
    key = Fernet.generate_key()
    fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, 'wb') as fh:
        fh.write(key)
    logger.info("Generated new credential key at %s", key_path)
    return key


class CredentialStoreError(RuntimeError):
    """Raised when a stored value cannot be decrypted with the configured key."""


class CredentialStore:
    def __init__(self, path: Optional[str] = None):
        self.path = path or default_store_path()
        if self.path != ':memory:':
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
        self._fernet = Fernet(_load_or_create_key(self.path))
        self._lock = threading.RLock()
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
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
    def get(self, name: str) -> Secret:
        with self._lock:
            row = self.conn.execute('SELECT value FROM credentials WHERE name = ?', (name,)).fetchone()
        if not row or not row[0]:
            return Secret(None)
        try:
            return Secret(self._fernet.decrypt(row[0].encode()).decode())
        except InvalidToken as ex:
            raise CredentialStoreError(f"Stored value '{name}' cannot be decrypted with the configured key") from ex

    # noinspection SqlResolve
    def set(self, name: str, value) -> None:
        plain = value.get_plain_text() if isinstance(value, Secret) else (value or '')
        encrypted = self._fernet.encrypt(plain.encode()).decode() if plain else ''
        with self._lock:
            self.conn.execute('REPLACE INTO credentials(name, value) VALUES (?, ?)', (name, encrypted))
            self.conn.commit()

    # noinspection SqlWithoutWhere
    def clear(self):
        with self._lock:
            self.conn.execute('DELETE FROM credentials')
            self.conn.commit()

    def load(self) -> NotifierConfig:
        return NotifierConfig(self.get(TENANT_KEY), self.get(TOKEN))

    def save(self, config: NotifierConfig) -> None:
        self.set(TENANT_KEY, config.tenant_key)
        self.set(TOKEN, config.token)
        logger.info("Saved CloudAEye credentials to %s", self.path)


__all__ = ["CredentialStore", "CredentialStoreError", "default_store_path"]
