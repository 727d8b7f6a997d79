"""Logging filter that scrubs credentials before records are emitted."""

from __future__ import annotations

import logging
import re


class LogRedactor:
    """Redact common credential patterns from log text."""

    def __init__(self, secrets: list[str] | None = None):
        self._regex_replacements: list[tuple[re.Pattern[str], str]] = [
            (
                re.compile(r"(?i)\bbearer\s+[a-z0-9._\-+/=]+"),
                "Bearer [REDACTED]",
            ),
            (
                re.compile(r"(?i)([?&]key=)[^&\s]+"),
                r"\1[REDACTED]",
            ),
            (
                re.compile(r'(?i)("?(?:x-goog-api-key|api[-_]?key|token|secret|password)"?\s*[:=]\s*)(".*?"|[^,\s;]+)'),
                r"\1[REDACTED]",
            ),
        ]
        self._secrets = [s for s in (secrets or []) if s and len(s) >= 6]

    def redact(self, text: str) -> str:
        out = text
        for regex, repl in self._regex_replacements:
            out = regex.sub(repl, out)
        for secret in self._secrets:
            out = out.replace(secret, "[REDACTED]")
        return out


class RedactingFilter(logging.Filter):
    """Rewrites each record's message through a LogRedactor."""

    def __init__(self, redactor: LogRedactor):
        super().__init__()
        self._redactor = redactor

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self._redactor.redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def install_redaction(logger: logging.Logger, redactor: LogRedactor) -> RedactingFilter:
    """Attach a redacting filter to every handler of ``logger``."""
    log_filter = RedactingFilter(redactor)
    for handler in logger.handlers:
        handler.addFilter(log_filter)
    return log_filter


def remove_redaction(logger: logging.Logger, log_filter: RedactingFilter) -> None:
    for handler in logger.handlers:
        handler.removeFilter(log_filter)
