"""Field descriptor extraction for record types.

A record type is a plain ``@dataclass``.  Relational semantics are declared
in field metadata under the ``"sql"`` key, usually through :func:`column`:

    @dataclass
    class Widget:
        id: int = column("pk", 0)
        group: str = column("key", "")
        name: str = column(default="")

Tag grammar (comma separated):

    pk                  Primary key.
    key                 Natural key.
    const               Not updated.
    fk:<table>(<field>) Foreign key (ON DELETE CASCADE).
    unique(<group>)     Member of the composite UNIQUE constraint <group>.
    index(<group>)      Member of the composite non-unique index <group>.

Fields typed as another dataclass are embedded: their columns are inlined
at that position.  A field typed :class:`Labels` holds the record's labels
and is not a column.  The static layout of a record class is computed once
and cached; values are always read from the instance.
"""

from __future__ import annotations

import dataclasses
import functools
import re
from dataclasses import dataclass
from typing import Any, get_type_hints

from migspine.core.errors import InvalidModelError, ValidationError

TAG = "sql"

TEXT = "text"
INT = "int"

UNIQUE_RE = re.compile(r"^unique\((\w+)\)$")
INDEX_RE = re.compile(r"^index\((\w+)\)$")
FK_RE = re.compile(r"^fk:(\w+)\((\w+)\)$")


class Labels(dict):
    """Name -> value label mapping carried by a record (not a column)."""


def column(tags: str = "", default: Any = dataclasses.MISSING, *, default_factory: Any = dataclasses.MISSING) -> Any:
    """Declare a dataclass field with relational tags."""
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata={TAG: tags},
    )


@dataclass(frozen=True)
class FK:
    """Foreign key target."""

    table: str
    field: str


@dataclass(frozen=True)
class Field:
    """Descriptor of one (flattened) record field."""

    name: str
    kind: str | None
    path: tuple[str, ...]
    type_name: str = ""
    pk: bool = False
    key: bool = False
    const: bool = False
    fk: FK | None = None
    unique: tuple[str, ...] = ()
    index: tuple[str, ...] = ()

    @property
    def param(self) -> str:
        """Bind parameter name."""
        return f"b_{self.name}"

    @property
    def mutable(self) -> bool:
        return not (self.pk or self.const)

    def get(self, model: Any) -> Any:
        target = model
        for attr in self.path:
            target = getattr(target, attr)
        return target

    def set(self, model: Any, value: Any) -> None:
        target = model
        for attr in self.path[:-1]:
            target = getattr(target, attr)
        setattr(target, self.path[-1], value)

    def empty(self, model: Any) -> bool:
        value = self.get(model)
        if self.kind == TEXT:
            return value is None or len(value) == 0
        if self.kind == INT:
            return value is None or value == 0
        return False

    def validate(self) -> None:
        if self.kind not in (TEXT, INT):
            raise ValidationError(
                f"{self.name}: {self.type_name or 'type'} not supported, must be: (str, int)"
            ).with_context(field=self.name)

    def embedded(self, attr: str) -> Field:
        """The same descriptor reached through the parent attribute *attr*."""
        return dataclasses.replace(self, path=(attr,) + self.path)


@dataclass(frozen=True)
class Layout:
    """Static layout of a record class."""

    table: str
    fields: tuple[Field, ...]
    labels: tuple[str, ...] | None = None


def parse_tag(name: str, tag: str) -> dict[str, Any]:
    """Parse a tag string into :class:`Field` keyword arguments."""
    opts: dict[str, Any] = {"unique": [], "index": []}
    for opt in tag.split(","):
        opt = opt.strip()
        if not opt:
            continue
        if opt in ("pk", "key", "const"):
            opts[opt] = True
            continue
        if opt.startswith("unique"):
            m = UNIQUE_RE.match(opt)
            if m is None:
                raise ValidationError(f"{name}: malformed tag option {opt!r}").with_context(field=name)
            opts["unique"].append(m.group(1))
        elif opt.startswith("index"):
            m = INDEX_RE.match(opt)
            if m is None:
                raise ValidationError(f"{name}: malformed tag option {opt!r}").with_context(field=name)
            opts["index"].append(m.group(1))
        elif opt.startswith("fk"):
            m = FK_RE.match(opt)
            if m is None:
                raise ValidationError(f"{name}: malformed tag option {opt!r}").with_context(field=name)
            opts["fk"] = FK(table=m.group(1), field=m.group(2))
    opts["unique"] = tuple(opts["unique"])
    opts["index"] = tuple(opts["index"])
    return opts


def _kind(hint: Any) -> str | None:
    if hint is str:
        return TEXT
    if hint is int:
        return INT
    return None


@functools.cache
def layout(cls: type) -> Layout:
    """Build (once) the flattened layout of a record class."""
    try:
        hints = get_type_hints(cls)
    except NameError as e:
        raise InvalidModelError(f"{cls.__name__}: cannot resolve field types: {e}") from e
    fields: list[Field] = []
    labels: tuple[str, ...] | None = None
    for f in dataclasses.fields(cls):
        hint = hints.get(f.name, f.type)
        if isinstance(hint, type) and issubclass(hint, Labels):
            labels = labels or (f.name,)
            continue
        if isinstance(hint, type) and dataclasses.is_dataclass(hint):
            sub = layout(hint)
            fields.extend(sf.embedded(f.name) for sf in sub.fields)
            if sub.labels is not None and labels is None:
                labels = (f.name,) + sub.labels
            continue
        fields.append(
            Field(
                name=f.name,
                kind=_kind(hint),
                path=(f.name,),
                type_name=getattr(hint, "__name__", str(hint)),
                **parse_tag(f.name, f.metadata.get(TAG, "")),
            )
        )
    return Layout(table=cls.__name__, fields=tuple(fields), labels=labels)


def _record_class(model: Any) -> type:
    if isinstance(model, type) or not dataclasses.is_dataclass(model):
        raise InvalidModelError(
            f"must be a dataclass instance, got {type(model).__name__}"
        )
    return type(model)


def fields(model: Any) -> list[Field]:
    """Ordered field descriptors of *model*."""
    return list(layout(_record_class(model)).fields)


def table_name(model: Any) -> str:
    """Table name of *model* (its class name)."""
    if isinstance(model, type):
        return model.__name__
    return type(model).__name__


def labels_of(model: Any) -> Labels | None:
    """The label mapping of *model*, or None when the type carries none."""
    path = layout(_record_class(model)).labels
    if path is None:
        return None
    target = model
    for attr in path:
        target = getattr(target, attr)
    return target


def has_labels(model: Any) -> bool:
    return layout(_record_class(model)).labels is not None


def validate(fields: list[Field]) -> None:
    """Reject descriptors that cannot be mapped to SQL."""
    seen: set[str] = set()
    pks = 0
    for f in fields:
        f.validate()
        if f.name in seen:
            raise ValidationError(f"{f.name}: duplicate column").with_context(field=f.name)
        seen.add(f.name)
        if f.pk:
            pks += 1
    if pks > 1:
        raise ValidationError("at most one pk field is supported")


def pk_field(fields: list[Field]) -> Field | None:
    for f in fields:
        if f.pk:
            return f
    return None


def key_fields(fields: list[Field]) -> list[Field]:
    return [f for f in fields if f.key]


def mutable_fields(fields: list[Field]) -> list[Field]:
    return [f for f in fields if f.mutable]


def not_empty(fields: list[Field], model: Any) -> list[Field]:
    return [f for f in fields if not f.empty(model)]


def label_key(fields: list[Field]) -> Field | None:
    """The field identifying a label owner: the pk, else a sole natural key."""
    pk = pk_field(fields)
    if pk is not None:
        return pk
    keys = key_fields(fields)
    if len(keys) == 1:
        return keys[0]
    return None


def require_label_key(table: str, fields: list[Field]) -> Field:
    key = label_key(fields)
    if key is None:
        raise ValidationError(
            f"{table}: labels need a pk or a single natural key"
        ).with_context(table=table)
    return key
