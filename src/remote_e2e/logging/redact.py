"""Keep API keys and tunnel tokens out of log output.

Secrets come from two places: the environment variables remote-e2e reads
(captured when a filter is built) and values handed over at runtime with
:func:`register_secret`, such as an ``--api-key`` given on the command line.
Remote payloads arrive camelCase, so field names are compared with
separators and case folded away (``tunnelKey`` == ``tunnel_key``).
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, FrozenSet, Mapping, Set

from remote_e2e.core.constants import ENV_API_KEY, ENV_TUNNEL_TOKEN

REDACTED = "[REDACTED]"

# Folded field names, see _fold()
SENSITIVE_FIELDS = frozenset(
    {"authorization", "apikey", "authtoken", "tunnelkey", "tunneltoken"}
)

# Shorter values would mangle ordinary words in messages
MIN_SECRET_LENGTH = 6

_HEADER_LINE = re.compile(r"(?i)(authorization\s*[:=]\s*)(\S.*)")
_CREDENTIAL_SCHEME = re.compile(r"(?i)\b(token|bearer)(\s+)[A-Za-z0-9._\-]{8,}")

# Attributes every LogRecord carries; only extras get scrubbed.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

_registered: Set[str] = set()


def register_secret(*values: Any) -> None:
    """Treat ``values`` as secrets in every record filtered from now on."""
    for value in values:
        if isinstance(value, str) and len(value) >= MIN_SECRET_LENGTH:
            _registered.add(value)


def _fold(key: Any) -> str:
    return re.sub(r"[\s_\-]", "", str(key)).lower()


def _is_sensitive(key: Any) -> bool:
    folded = _fold(key)
    return folded in SENSITIVE_FIELDS or folded.endswith("apikey")


def _env_secrets() -> FrozenSet[str]:
    found = set()
    for name, value in os.environ.items():
        if len(value) < MIN_SECRET_LENGTH:
            continue
        if name in (ENV_API_KEY, ENV_TUNNEL_TOKEN) or name.endswith("_API_KEY"):
            found.add(value)
    return frozenset(found)


class RedactionFilter(logging.Filter):
    """Rewrite a record's message and extras with secrets masked.

    The message is rendered with its args first so a secret passed as an
    argument is caught too; ``record.args`` is cleared afterwards.
    """

    def __init__(self, name: str = "") -> None:
        super().__init__(name)
        self._env = _env_secrets()

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)
        record.msg = self._scrub(message)
        record.args = ()
        for key in set(record.__dict__) - _RECORD_ATTRS:
            record.__dict__[key] = self._scrub_value(key, record.__dict__[key])
        return True

    def _scrub_value(self, key: Any, value: Any) -> Any:
        if _is_sensitive(key) and value:
            return REDACTED
        if isinstance(value, str):
            return self._scrub(value)
        if isinstance(value, Mapping):
            return {k: self._scrub_value(k, v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(self._scrub_value(None, v) for v in value)
        return value

    def _scrub(self, text: str) -> str:
        text = _HEADER_LINE.sub(lambda m: m.group(1) + REDACTED, text)
        text = _CREDENTIAL_SCHEME.sub(
            lambda m: f"{m.group(1)}{m.group(2)}{REDACTED}", text
        )
        # Longest first so a secret containing another is masked whole
        for secret in sorted(self._env | _registered, key=len, reverse=True):
            text = text.replace(secret, REDACTED)
        return text


def install_redaction_filter(target: logging.Filterer | None = None) -> None:
    """Attach one :class:`RedactionFilter` to a handler or logger.

    Logger filters do not see records propagated from child loggers, so pass
    the handler when records from the whole package must be covered.
    """
    target = target or logging.getLogger("remote_e2e")
    if not any(isinstance(existing, RedactionFilter) for existing in target.filters):
        target.addFilter(RedactionFilter())


__all__ = [
    "REDACTED",
    "RedactionFilter",
    "install_redaction_filter",
    "register_secret",
]
