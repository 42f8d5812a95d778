"""Redaction of sensitive values from log payloads.

Redaction happens in two passes:

1. A recursive walk over the structured value masks every mapping entry whose
   key is a recognized sensitive name, before anything is serialized.
2. Pattern passes over the serialized string catch what the walk cannot see:
   ``"password": "..."`` pairs inside strings that were serialized earlier
   (and therefore appear with escaped quotes), and ``Bearer <token>``
   credentials anywhere in the text.
"""

import dataclasses
import json
import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

logger = logging.getLogger(__name__)

MASK = "*****"
UNREDACTABLE = "<unredactable payload>"
DEFAULT_SENSITIVE_KEYS = ("password", "token")

_BEARER_PATTERN = re.compile(r"Bearer\s+[A-Za-z0-9._-]+")


def _plain_pattern(key: str) -> re.Pattern[str]:
    # "key": "value"
    return re.compile(r'("' + re.escape(key) + r'"\s*:\s*")(?:[^"\\]|\\.)*(")')


def _escaped_pattern(key: str) -> re.Pattern[str]:
    # \"key\": \"value\" as found inside an already serialized string. Inside
    # the value, \\ followed by one more token is an escape of the inner string
    # (e.g. \\\" is a quote that belongs to the value).
    return re.compile(
        r'(\\"'
        + re.escape(key)
        + r'\\"\s*:\s*\\")(?:\\\\(?:\\.|[^\\])|[^"\\]|\\[^"\\])*(\\")'
    )


def _open_pattern(key: str, quote: str) -> re.Pattern[str]:
    # A value opened by "key": " that a cut left without its closing quote
    opening = quote + re.escape(key) + quote + r"\s*:\s*" + quote
    closed = r"\*{" + str(len(MASK)) + "}" + quote
    return re.compile("(" + opening + ")(?!" + closed + ").*\\Z", re.DOTALL)


class Sanitizer:
    """Serializes arbitrary values and masks sensitive fields.

    Example:
        ```python
        sanitizer = Sanitizer()
        sanitizer({"email": "a@b.c", "password": "hunter2"})
        # '{"email":"a@b.c","password":"*****"}'
        ```
    """

    def __init__(self, sensitive_keys: Iterable[str] = DEFAULT_SENSITIVE_KEYS) -> None:
        self.sensitive_keys = frozenset(sensitive_keys)
        self._patterns: list[re.Pattern[str]] = []
        for key in sorted(self.sensitive_keys):
            self._patterns.append(_escaped_pattern(key))
            self._patterns.append(_plain_pattern(key))
        self._open_patterns = [
            _open_pattern(key, quote)
            for key in sorted(self.sensitive_keys)
            for quote in (re.escape('\\"'), '"')
        ]

    def __call__(self, data: Any) -> str:
        return self.sanitize(data)

    def sanitize(self, data: Any) -> str:
        """Serialize ``data`` and redact sensitive values. Never raises."""
        try:
            redacted = self.redact(data)
        except Exception:
            logger.debug("Could not redact payload of type %s", type(data).__name__)
            return json.dumps(UNREDACTABLE)
        try:
            text = _serialize(redacted)
        except Exception:
            logger.debug("Falling back to repr() for unserializable payload")
            text = repr(redacted)
        return self.redact_text(text)

    def redact(self, value: Any) -> Any:
        """Return a copy of ``value`` with sensitive mapping entries masked."""
        return self._walk(value, set())

    def redact_text(self, text: str) -> str:
        """Mask sensitive pairs and bearer credentials in serialized text."""
        for pattern in self._patterns:
            text = pattern.sub(lambda m: f"{m.group(1)}{MASK}{m.group(2)}", text)
        return _BEARER_PATTERN.sub(f"Bearer {MASK}", text)

    def clip(self, text: str, limit: int) -> str:
        """Redact ``text`` and cut it to ``limit`` characters.

        Redaction runs before the cut so a limit that falls inside a value
        cannot expose its prefix. A sensitive value left open by the cut (or
        by an upstream one) is masked through to the end of the text, so the
        result may exceed ``limit`` by the length of the mask.
        """
        text = self.redact_text(text)[:limit]
        for pattern in self._open_patterns:
            text = pattern.sub(lambda m: m.group(1) + MASK, text)
        return text

    def _walk(self, value: Any, seen: set[int]) -> Any:
        if isinstance(value, (str, bytes, int, float, bool)) or value is None:
            return value
        if id(value) in seen:
            return "<circular>"
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            value = dataclasses.asdict(value)
        seen = seen | {id(value)}
        if isinstance(value, Mapping):
            return {
                _json_key(key): MASK
                if isinstance(key, str) and key in self.sensitive_keys
                else self._walk(item, seen)
                for key, item in value.items()
            }
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self._walk(item, seen) for item in value]
        return value


def _json_key(key: Any) -> Any:
    # json.dumps rejects keys other than str, int, float, bool and None
    if isinstance(key, (str, int, float, bool)) or key is None:
        return key
    return str(key)


def _serialize(value: Any) -> str:
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return json.dumps(value, default=str, separators=(",", ":"))


_default = Sanitizer()


def sanitize(data: Any) -> str:
    """Sanitize ``data`` with the default sensitive keys (password, token)."""
    return _default.sanitize(data)
