"""
Execute stored templates by name.

The template's SQL is trusted (authored through the template API) and is
not passed through the free-form validator. Per-template timeout and row
cap apply when positive; otherwise the global defaults are used.
"""

import logging
from typing import Any, Protocol

from app.core.config import settings
from app.core.errors import TemplateNotFoundError
from app.engines.sql import QueryExecutor
from app.models_query import QueryTemplate
from app.schemas_query import QueryResponse

_log = logging.getLogger(__name__)


class TemplateLookup(Protocol):
    def get_by_name(self, name: str) -> QueryTemplate | None: ...


class TemplateExecutor:
    def __init__(
        self,
        templates: TemplateLookup,
        executor: QueryExecutor,
        *,
        default_timeout_seconds: int | None = None,
        default_max_rows: int | None = None,
    ) -> None:
        self.templates = templates
        self.executor = executor
        self.default_timeout_seconds = default_timeout_seconds or settings.QUERY_TIMEOUT_SECONDS
        self.default_max_rows = default_max_rows or settings.QUERY_MAX_ROWS

    def execute_by_name(
        self, name: str, params: dict[str, Any] | None = None
    ) -> QueryResponse:
        template = self.templates.get_by_name(name)
        if template is None:
            _log.info("Template not found or inactive: %s", name)
            raise TemplateNotFoundError(f"Template '{name}' not found or not active")

        timeout = (
            template.timeout_seconds
            if template.timeout_seconds and template.timeout_seconds > 0
            else self.default_timeout_seconds
        )
        max_rows = (
            template.max_results
            if template.max_results and template.max_results > 0
            else self.default_max_rows
        )
        _log.info(
            "Executing template %s v%s (timeout=%ss, max_rows=%s)",
            template.name,
            template.version,
            timeout,
            max_rows,
        )
        bound = self.executor.bind(template.query_sql, params)
        return self.executor.execute(bound, timeout, max_rows)
