"""
Notifier configuration: the tenant key and token used to reach CloudAEye.

A single NotifierConfig holds both values as Secret instances and is injected into the
notifier. Values resolve from CLI flags, then environment variables, then the
persisted credential store.
"""
import logging
import os
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)

ENV_TENANT_KEY = "CLOUDAEYE_TENANT_KEY"
ENV_TOKEN = "CLOUDAEYE_TOKEN"


class Secret:
    """
    Opaque wrapper for a sensitive string. Never printed in plain text.
    """
    def __init__(self, value: Optional[str]):
        self._value = value or ''

    def get_plain_text(self) -> str:
        return self._value

    def is_empty(self) -> bool:
        return not self._value

    def __eq__(self, other):
        return isinstance(other, Secret) and other._value == self._value

    def __hash__(self):
        return hash(self._value)

    def __repr__(self):
        return "Secret(****)" if self._value else "Secret()"

    __str__ = __repr__


def plain_text(value: Union[Secret, str, None]) -> str:
    """Return the plain text of a Secret or a string."""
    if isinstance(value, Secret):
        return value.get_plain_text()
    return value or ''


class FormValidation:
    """
    Result of validating a configuration value or testing the connection.
    """
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"

    def __init__(self, kind: str, message: str = ''):
        self.kind = kind
        self.message = message

    @classmethod
    def ok(cls, message: str = '') -> "FormValidation":
        return cls(cls.OK, message)

    @classmethod
    def warning(cls, message: str) -> "FormValidation":
        return cls(cls.WARNING, message)

    @classmethod
    def error(cls, message: str) -> "FormValidation":
        return cls(cls.ERROR, message)

    def __str__(self):
        return f"{self.kind.upper()}: {self.message}" if self.message else self.kind.upper()


def check_tenant_key(tenant_key: Union[Secret, str, None]) -> FormValidation:
    if not plain_text(tenant_key):
        return FormValidation.warning("Please specify a valid tenant key")
    return FormValidation.ok()


def check_token(token: Union[Secret, str, None]) -> FormValidation:
    if not plain_text(token):
        return FormValidation.warning("Please provide a valid token")
    return FormValidation.ok()


class NotifierConfig:
    """
    Tenant key and token for the CloudAEye webhook.
    """
    def __init__(self, tenant_key: Union[Secret, str, None] = None, token: Union[Secret, str, None] = None):
        self.tenant_key = tenant_key if isinstance(tenant_key, Secret) else Secret(tenant_key)
        self.token = token if isinstance(token, Secret) else Secret(token)

    def validate(self) -> Dict[str, FormValidation]:
        """Validate both values. Problems are logged as warnings and never block a notification."""
        results = {"tenant_key": check_tenant_key(self.tenant_key), "token": check_token(self.token)}
        for name, res in results.items():
            if res.kind != FormValidation.OK:
                logger.warning("Configuration %s: %s", name, res.message)
        return results

    def __repr__(self):
        return f"NotifierConfig(tenant_key={self.tenant_key!r}, token={self.token!r})"


def resolve_config(tenant_key: Optional[str] = None, token: Optional[str] = None, store=None, environ: Optional[Dict[str, str]] = None) -> NotifierConfig:
    """Resolve the configuration. CLI values take precedence over the environment, which takes precedence over the store."""
    env = os.environ if environ is None else environ
    stored = store.load() if store is not None else NotifierConfig()
    tenant_key_val = tenant_key or env.get(ENV_TENANT_KEY) or stored.tenant_key.get_plain_text()
    token_val = token or env.get(ENV_TOKEN) or stored.token.get_plain_text()
    return NotifierConfig(Secret(tenant_key_val), Secret(token_val))
