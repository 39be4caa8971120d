"""
Incremental SQL statement builder.

asyncpg uses positional placeholders ($1, $2, ...). `QueryBuilder` keeps the
placeholder counter and the parameter list in lockstep so repositories can
append optional predicates without tracking numbering by hand.

Literal fragments are written verbatim. Only pass trusted text (table and
column names, keywords) to `literal()`; values always go through `param()`.
"""

from __future__ import annotations

from typing import Any


class QueryBuildError(ValueError):
    pass


class QueryBuilder:
    def __init__(self) -> None:
        self._parts: list[str] = []
        self._params: list[Any] = []
        self._count = 0
        self._error: QueryBuildError | None = None

    @property
    def count(self) -> int:
        """
        Number of placeholders emitted so far.
        """
        return self._count

    def literal(self, text: str) -> QueryBuilder:
        self._parts.append(text)
        return self

    def param(self, value: Any) -> QueryBuilder:
        self._count += 1
        self._parts.append(f"${self._count}")
        self._params.append(value)
        return self

    def params(self, *values: Any) -> QueryBuilder:
        """
        Write one placeholder per value, separated by ", ".

        An empty call would render invalid SQL such as `IN ()`; the error is
        recorded and raised by `build()`.
        """
        if not values:
            self.fail(QueryBuildError("params() called without values."))
            return self

        for i, value in enumerate(values):
            if i > 0:
                self._parts.append(", ")
            self.param(value)
        return self

    def fail(self, error: QueryBuildError) -> None:
        # First error wins; later fragments are usually consequences of it.
        if self._error is None:
            self._error = error

    def build(self) -> tuple[str, list[Any]]:
        if self._error is not None:
            raise self._error
        return "".join(self._parts), list(self._params)
