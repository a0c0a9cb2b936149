"""Value binder: staging cells between records and statements.

Each field gets one kind-matched staging cell.  ``pull`` copies the record
value into the cell (for bind parameters), ``scan`` loads a fetched row
into the cells, and ``push`` copies the cells back into the record.  The
binder is the only place values cross between records and the engine, so
unsupported kinds are rejected here too.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from migspine.core.errors import EngineError, ValidationError
from migspine.model.fields import INT, TEXT, Field

_ZERO = {TEXT: "", INT: 0}


class Binder:
    """Staging cells for one record instance."""

    def __init__(self, fields: list[Field], model: Any) -> None:
        self.fields = fields
        self.model = model
        self._cells: dict[str, Any] = {}

    def pull(self, field: Field) -> Any:
        """Copy the record value of *field* into its cell and return it."""
        value = field.get(self.model)
        if field.kind == TEXT:
            value = "" if value is None else str(value)
        elif field.kind == INT:
            value = 0 if value is None else int(value)
        else:
            raise ValidationError(
                f"{field.name}: {field.type_name} not supported, must be: (str, int)"
            ).with_context(field=field.name)
        self._cells[field.name] = value
        return value

    def cell(self, field: Field) -> Any:
        """Current staging value of *field*."""
        return self._cells.get(field.name, _ZERO.get(field.kind))

    def params(self, fields: Iterable[Field]) -> dict[str, Any]:
        """Bind parameters for *fields*, pulled fresh from the record."""
        return {f.param: self.pull(f) for f in fields}

    def scan(self, row: Mapping[str, Any]) -> None:
        """Load a fetched row into the cells, then push them into the record."""
        for f in self.fields:
            if f.name not in row:
                raise EngineError(f"column {f.name} missing from result row").with_context(
                    field=f.name
                )
            value = row[f.name]
            if value is None:
                value = _ZERO.get(f.kind)
            elif f.kind == TEXT:
                value = str(value)
            elif f.kind == INT:
                value = int(value)
            self._cells[f.name] = value
        self.push()

    def push(self) -> None:
        """Write every staged cell back into the record."""
        for f in self.fields:
            if f.name in self._cells:
                f.set(self.model, self._cells[f.name])
