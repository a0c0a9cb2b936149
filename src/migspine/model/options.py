"""List options: label filter, pagination and ordering."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Page:
    """Pagination window applied after ordering."""

    limit: int
    offset: int = 0


@dataclass
class ListOptions:
    """Qualifiers for ``Table.list`` / ``Table.count``.

    Attributes:
        count: Select ``COUNT(*)`` instead of the columns.
        labels: Label filter; every name/value pair must match (AND).
        page: Optional ``LIMIT/OFFSET`` window.
        sort: 1-based field positions for ``ORDER BY``, in order.
    """

    count: bool = False
    labels: dict[str, str] = field(default_factory=dict)
    page: Page | None = None
    sort: list[int] = field(default_factory=list)
