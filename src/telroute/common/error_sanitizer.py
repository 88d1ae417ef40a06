"""
Client-facing error message redaction.

Anything an API response says about a failure goes through here first.
The record store and the spreadsheet reader can surface DSNs, SQL
fragments, server paths and tracebacks in their messages; operators get
the routing part of the message only. Full errors stay in the server log.

Usage:
    from src.telroute.common.error_sanitizer import sanitize_error_message

    detail = sanitize_error_message(error.message)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

FALLBACK_MESSAGE = "An error occurred"


@dataclass(frozen=True)
class RedactionRule:
    """One named substitution applied to outgoing messages."""

    name: str
    pattern: str
    replacement: str

    def compile(self) -> re.Pattern:
        return re.compile(self.pattern, re.IGNORECASE)


# Order matters: DSNs must be consumed before the credential rules see
# their "user:password@" part.
ROUTING_RULES: tuple[RedactionRule, ...] = (
    RedactionRule("dsn", r"postgres(?:ql)?://\S+", "[DATABASE_URL]"),
    RedactionRule("env", r"\b(?:DATABASE_URL|API_KEY)\b\s*[=:]", "[ENV_VAR]="),
    RedactionRule("bearer", r"bearer\s+[\w\-\.]+", "Bearer [REDACTED]"),
    RedactionRule("api_key", r"(?:x-)?api[-_]?key[=:\s]+[^\s,;]+", "api_key=[REDACTED]"),
    RedactionRule("password", r"password[=:\s]+[^\s,;]+", "password=[REDACTED]"),
    RedactionRule("secret", r"secret[=:\s]+[^\s,;]+", "secret=[REDACTED]"),
    RedactionRule("traceback", r"Traceback \(most recent call last\):[\s\S]*?(?=\n\n|\Z)", "[STACK_TRACE]"),
    RedactionRule("frame", r'File "[^"]+", line \d+', 'File "[REDACTED]", line [REDACTED]'),
    RedactionRule("sql_detail", r"\b(?:DETAIL|HINT|CONTEXT|QUERY):[^\n]*", "[SQL_DETAIL]"),
    RedactionRule("unix_path", r"/(?:home|root|usr|var|etc|opt|mnt|tmp|srv)/[^\s,;]+", "[FILE_PATH]"),
    RedactionRule("windows_path", r"\b[A-Z]:\\[^\s,;]+", "[FILE_PATH]"),
    RedactionRule(
        "ipv4",
        r"\b(?:(?:25[0-5]|2[0-4]\d|1?\d?\d)\.){3}(?:25[0-5]|2[0-4]\d|1?\d?\d)\b",
        "[IP_ADDRESS]",
    ),
    RedactionRule("token", r"\b[A-Za-z0-9+/]{40,}={0,2}", "[BASE64_REDACTED]"),
)


@dataclass
class SanitizationResult:
    """Outcome of one sanitize call, with a count per rule that fired."""

    sanitized_message: str
    redactions: dict[str, int] = field(default_factory=dict)

    @property
    def redaction_count(self) -> int:
        return sum(self.redactions.values())

    @property
    def was_sanitized(self) -> bool:
        return bool(self.redactions)


class ErrorSanitizer:
    """Applies redaction rules and a length cap to error messages.

    Phone numbers, port labels such as ``2-10-3`` and wire color values
    are too short to hit any rule, so routing messages come through
    unchanged.
    """

    def __init__(
        self,
        patterns: Optional[Iterable[tuple[str, str]]] = None,
        max_message_length: int = 500,
        rules: Optional[Iterable[RedactionRule]] = None,
    ):
        if patterns is not None:
            rules = [
                RedactionRule(f"custom_{i}", pattern, replacement)
                for i, (pattern, replacement) in enumerate(patterns)
            ]
        self.rules = tuple(rules if rules is not None else ROUTING_RULES)
        self.max_message_length = max_message_length
        self._compiled = [(rule.name, rule.compile(), rule.replacement) for rule in self.rules]

    def sanitize(self, message: str, error_type: Optional[str] = None) -> SanitizationResult:
        """Redact a message.

        Args:
            message: Raw message, possibly from a driver or parser
            error_type: Optional prefix such as "Import error"
        """
        if not message:
            return SanitizationResult(FALLBACK_MESSAGE)

        redactions: dict[str, int] = {}
        text = message
        for name, compiled, replacement in self._compiled:
            text, hits = compiled.subn(replacement, text)
            if hits:
                redactions[name] = hits

        if len(text) > self.max_message_length:
            text = text[: self.max_message_length] + "... [TRUNCATED]"
        text = text.strip() or FALLBACK_MESSAGE

        if error_type and not text.startswith(error_type):
            text = f"{error_type}: {text}"

        return SanitizationResult(text, redactions)

    def is_safe(self, message: str) -> bool:
        """True when no rule would change the message."""
        return not any(compiled.search(message) for _, compiled, _ in self._compiled)


_sanitizer: Optional[ErrorSanitizer] = None


def get_sanitizer() -> ErrorSanitizer:
    """Process-wide sanitizer with the routing rules."""
    global _sanitizer
    if _sanitizer is None:
        _sanitizer = ErrorSanitizer()
    return _sanitizer


def sanitize_error_message(message: str, error_type: Optional[str] = None) -> str:
    """Redacted form of ``message``, safe for an HTTP response body.

    Example:
        >>> sanitize_error_message("connect failed: postgresql://u:p@db/routes")
        'connect failed: [DATABASE_URL]'
    """
    return get_sanitizer().sanitize(message, error_type).sanitized_message
