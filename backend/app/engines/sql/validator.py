"""
Lexical gate for ad-hoc SQL.

Normalises the statement (trim + upper) and checks it against a leading
command allow-list and a forbidden keyword list. This is a substring check:
comments, string literals and identifiers that merely contain a keyword
(``updated_at``) are not understood and can cause false positives.
"""

import logging
from collections.abc import Iterable

from app.core.errors import QueryValidationError, ValidationFailure

logger = logging.getLogger(__name__)

FORBIDDEN_KEYWORDS: tuple[str, ...] = (
    "DROP",
    "DELETE",
    "TRUNCATE",
    "INSERT",
    "UPDATE",
    "ALTER",
    "CREATE",
    "EXEC",
    "EXECUTE",
)


class QueryValidator:
    """Reject empty, non-allow-listed or keyword-bearing statements."""

    def __init__(
        self,
        allowed_commands: Iterable[str] = ("SELECT",),
        *,
        enabled: bool = True,
        forbidden_keywords: Iterable[str] = FORBIDDEN_KEYWORDS,
    ) -> None:
        self.allowed_commands = tuple(c.strip().upper() for c in allowed_commands if c.strip())
        self.enabled = enabled
        self.forbidden_keywords = tuple(k.upper() for k in forbidden_keywords)

    def validate(self, sql: str | None) -> None:
        if sql is None or not sql.strip():
            raise QueryValidationError(ValidationFailure.EMPTY_QUERY, "Query cannot be empty")
        if not self.enabled:
            return

        normalized = sql.strip().upper()
        if not any(normalized.startswith(cmd) for cmd in self.allowed_commands):
            logger.warning("Rejected query: command not allowed")
            raise QueryValidationError(
                ValidationFailure.DISALLOWED_COMMAND,
                f"Only {', '.join(self.allowed_commands)} statements are allowed",
            )

        for keyword in self.forbidden_keywords:
            if keyword in normalized:
                logger.warning("Rejected query: forbidden keyword %s", keyword)
                raise QueryValidationError(
                    ValidationFailure.FORBIDDEN_KEYWORD,
                    f"Query contains forbidden keyword: {keyword}",
                )
