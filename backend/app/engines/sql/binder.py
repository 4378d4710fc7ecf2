"""
Named parameter binding.

Statements and templates are written with ``:name`` placeholders. ``bind``
rewrites them in one pass into the marker a driver understands and collects
the coerced values; values are never spliced into the SQL text.

- ``ParamStyle.AT``: ``@name`` (canonical form, named parameters)
- ``ParamStyle.PYFORMAT``: ``%(name)s`` for psycopg and pymysql
- ``ParamStyle.QMARK``: ``?`` for Trino, positional in order of occurrence

The rewrite is textual: a ``:word`` inside a string literal, or the second
colon of a Postgres ``::type`` cast, is treated as a placeholder too. With
no value supplied for it, binding fails with ParameterBindingError
(``x::int`` reports ``int`` missing, ``'12:30:00'`` reports ``00`` and
``30``). Write ``CAST(x AS int)`` or pass the literal as a parameter.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.core.errors import ParameterBindingError
from app.core.param_type import ParamTypeError, coerce_param_value
from app.models_query import ProductTypeEnum

PLACEHOLDER_RE = re.compile(r":(\w+)")
_AT_RE = re.compile(r"@(\w+)")


class ParamStyle(str, Enum):
    AT = "at"
    PYFORMAT = "pyformat"
    QMARK = "qmark"


_STYLE_BY_PRODUCT: dict[ProductTypeEnum, ParamStyle] = {
    ProductTypeEnum.POSTGRES: ParamStyle.PYFORMAT,
    ProductTypeEnum.MYSQL: ParamStyle.PYFORMAT,
    ProductTypeEnum.TRINO: ParamStyle.QMARK,
}


def style_for(product_type: ProductTypeEnum | str) -> ParamStyle:
    """Driver paramstyle for a backend product type."""
    return _STYLE_BY_PRODUCT[ProductTypeEnum(product_type)]


@dataclass(frozen=True)
class BoundParameter:
    name: str
    value: Any


@dataclass(frozen=True)
class BoundQuery:
    """Rewritten SQL plus the ordered parameter list that goes with it."""

    sql: str
    parameters: list[BoundParameter] = field(default_factory=list)
    style: ParamStyle = ParamStyle.AT
    placeholder_count: int = 0

    def driver_params(self) -> dict[str, Any] | list[Any] | None:
        """
        Parameters in the shape ``cursor.execute`` expects for this style.

        None when the statement has no placeholders, so drivers skip their
        own ``%`` / ``?`` processing.
        """
        if self.placeholder_count == 0:
            return None
        if self.style == ParamStyle.QMARK:
            return [p.value for p in self.parameters]
        return {p.name: p.value for p in self.parameters}

    def restyle(self, style: ParamStyle) -> "BoundQuery":
        """
        Convert a canonical ``@name`` query to a driver style.

        Only ``@`` markers naming a bound parameter are rewritten.
        """
        if style == self.style:
            return self
        if self.placeholder_count == 0:
            return BoundQuery(
                sql=self.sql,
                parameters=[] if style == ParamStyle.QMARK else list(self.parameters),
                style=style,
            )
        if self.style != ParamStyle.AT:
            raise ValueError(f"Cannot restyle {self.style.value} query to {style.value}")
        values = {p.name: p.value for p in self.parameters}

        def _known(m: re.Match[str]) -> bool:
            return m.group(1) in values

        if style == ParamStyle.PYFORMAT:
            sql = _AT_RE.sub(
                lambda m: "%(" + m.group(1) + ")s" if _known(m) else m.group(0),
                self.sql.replace("%", "%%"),
            )
            return BoundQuery(sql, list(self.parameters), style, self.placeholder_count)

        order: list[BoundParameter] = []

        def _qmark(m: re.Match[str]) -> str:
            if not _known(m):
                return m.group(0)
            order.append(BoundParameter(m.group(1), values[m.group(1)]))
            return "?"

        sql = _AT_RE.sub(_qmark, self.sql)
        return BoundQuery(sql, order, style, len(order))


def _coerce(name: str, value: Any) -> Any:
    try:
        return coerce_param_value(value)
    except ParamTypeError as e:
        raise ParameterBindingError(f"Parameter '{name}' {e}") from e


def bind(
    sql: str,
    params: dict[str, Any] | None = None,
    style: ParamStyle = ParamStyle.AT,
) -> BoundQuery:
    """
    Rewrite ``:name`` placeholders in *sql* and attach coerced values.

    Raises ParameterBindingError when a placeholder has no entry in *params*.
    """
    params = params or {}
    names = PLACEHOLDER_RE.findall(sql)
    missing = sorted({n for n in names if n not in params})
    if missing:
        raise ParameterBindingError(
            f"Missing value for parameter(s): {', '.join(missing)}",
            details={"missing": missing},
        )

    if not names:
        parameters = (
            []
            if style == ParamStyle.QMARK
            else [BoundParameter(k, _coerce(k, v)) for k, v in params.items()]
        )
        return BoundQuery(sql=sql, parameters=parameters, style=style)

    if style == ParamStyle.AT:
        rewritten = PLACEHOLDER_RE.sub(lambda m: "@" + m.group(1), sql)
        parameters = [BoundParameter(k, _coerce(k, v)) for k, v in params.items()]
    elif style == ParamStyle.PYFORMAT:
        escaped = sql.replace("%", "%%")
        rewritten = PLACEHOLDER_RE.sub(lambda m: "%(" + m.group(1) + ")s", escaped)
        parameters = [BoundParameter(k, _coerce(k, v)) for k, v in params.items()]
    else:
        rewritten = PLACEHOLDER_RE.sub("?", sql)
        parameters = [BoundParameter(n, _coerce(n, params[n])) for n in names]

    return BoundQuery(
        sql=rewritten,
        parameters=parameters,
        style=style,
        placeholder_count=len(names),
    )
