"""Tests for the Table gateway."""

from __future__ import annotations

import pytest

from migspine.core.errors import (
    ConstraintViolation,
    EngineError,
    InvalidModelError,
    NotFoundError,
    ValidationError,
)
from migspine.model import ListOptions, Page, Table
from tests._support.records import Doc, Note, OnlyKeys, Pair, Pinned, Ratio, Stamp, Widget


class TestWidgetScenario:
    def test_insert_upsert_delete(self, table: Table) -> None:
        table.insert(Widget(1, "g1", "a"))
        assert table.get(Widget(id=1)) == Widget(1, "g1", "a")

        table.insert(Widget(1, "g1", "b"))
        assert table.get(Widget(id=1)) == Widget(1, "g1", "b")
        assert table.count(Widget(group="g1")) == 1

        table.delete(Widget(id=1))
        with pytest.raises(NotFoundError):
            table.get(Widget(id=1))


class TestInsert:
    def test_round_trip(self, table: Table) -> None:
        doc = Doc(id=1, stamp=Stamp(created="today", revision=3), title="t", body="b")
        table.insert(doc)
        assert table.get(Doc(id=1)) == doc

    def test_upsert_by_unique_group(self, table: Table) -> None:
        table.insert(Pair("l", "r", "first"))
        table.insert(Pair("l", "r", "second"))
        assert table.list(Pair()) == [Pair("l", "r", "second")]

    def test_conflict_then_missing_row(self, table: Table) -> None:
        table.insert(Doc(id=1, title="same"))
        with pytest.raises(NotFoundError) as info:
            table.insert(Doc(id=2, title="same"))
        assert isinstance(info.value.__cause__, ConstraintViolation)
        assert table.count(Doc()) == 1

    def test_unsupported_kind(self, table: Table) -> None:
        with pytest.raises(ValidationError):
            table.insert(Ratio(id=1, value=0.5))

    def test_not_a_record(self, table: Table) -> None:
        with pytest.raises(InvalidModelError):
            table.insert(Widget)


class TestUpdate:
    def test_update(self, table: Table) -> None:
        table.insert(Widget(1, "g1", "a"))
        table.update(Widget(1, "g2", "z"))
        assert table.get(Widget(id=1)) == Widget(1, "g2", "z")

    def test_missing(self, table: Table) -> None:
        with pytest.raises(NotFoundError) as info:
            table.update(Widget(9, "g", "n"))
        assert info.value.context.table == "Widget"
        assert info.value.context.operation == "update"

    def test_const_is_kept(self, table: Table) -> None:
        table.insert(Pinned(1, "monday", "a"))
        table.update(Pinned(1, "friday", "b"))
        assert table.get(Pinned(id=1)) == Pinned(1, "monday", "b")

    def test_embedded_const_is_kept(self, table: Table) -> None:
        table.insert(Doc(id=1, stamp=Stamp("monday", 1)))
        table.insert(Doc(id=1, stamp=Stamp("friday", 2)))
        assert table.get(Doc(id=1)).stamp == Stamp("monday", 2)

    def test_by_natural_keys(self, table: Table) -> None:
        table.insert(Pair("l", "r", "x"))
        table.update(Pair("l", "r", "y"))
        assert table.get(Pair("l", "r")).note == "y"

    def test_nothing_mutable(self, table: Table) -> None:
        table.insert(OnlyKeys("1", "2"))
        table.update(OnlyKeys("1", "2"))
        assert table.count(OnlyKeys()) == 1

    def test_no_identity(self, table: Table) -> None:
        with pytest.raises(ValidationError):
            table.update(Note("x"))


class TestDelete:
    def test_absent_is_noop(self, table: Table) -> None:
        table.delete(Widget(id=42))

    def test_by_natural_keys(self, table: Table) -> None:
        table.insert(Pair("l", "r"))
        table.insert(Pair("l", "s"))
        table.delete(Pair("l", "r"))
        assert table.list(Pair()) == [Pair("l", "s")]


class TestGet:
    def test_fills_record(self, table: Table) -> None:
        table.insert(Widget(1, "g1", "a"))
        w = Widget(id=1)
        assert table.get(w) is w
        assert w.name == "a"

    def test_by_natural_key(self, table: Table) -> None:
        table.insert(Widget(5, "g5", "e"))
        assert table.get(Widget(group="g5")) == Widget(5, "g5", "e")

    def test_shared_natural_key_lowest_pk(self, table: Table) -> None:
        table.insert(Widget(5, "g", "five"))
        table.insert(Widget(2, "g", "two"))
        table.insert(Widget(9, "g", "nine"))
        assert table.get(Widget(group="g")).id == 2

    def test_missing(self, table: Table) -> None:
        with pytest.raises(NotFoundError):
            table.get(Widget(id=1))

    def test_no_identity(self, table: Table) -> None:
        with pytest.raises(ValidationError):
            table.get(Note("x"))


@pytest.fixture
def widgets(table: Table) -> Table:
    for i, (group, name) in enumerate(
        [("g1", "e"), ("g1", "d"), ("g2", "c"), ("g1", "b"), ("g2", "a")], start=1
    ):
        table.insert(Widget(i, group, name))
    return table


class TestList:
    def test_all(self, widgets: Table) -> None:
        assert len(widgets.list(Widget())) == 5

    def test_by_example(self, widgets: Table) -> None:
        found = widgets.list(Widget(group="g1"), ListOptions(sort=[1]))
        assert [w.id for w in found] == [1, 2, 4]

    def test_conjunction(self, widgets: Table) -> None:
        assert widgets.list(Widget(group="g2", name="a")) == [Widget(5, "g2", "a")]

    def test_sort(self, widgets: Table) -> None:
        found = widgets.list(Widget(), ListOptions(sort=[3]))
        assert [w.name for w in found] == ["a", "b", "c", "d", "e"]

    def test_multi_sort(self, widgets: Table) -> None:
        found = widgets.list(Widget(), ListOptions(sort=[2, 3]))
        assert [w.id for w in found] == [4, 2, 1, 5, 3]

    def test_page(self, widgets: Table) -> None:
        found = widgets.list(Widget(), ListOptions(sort=[1], page=Page(limit=2, offset=2)))
        assert [w.id for w in found] == [3, 4]

    def test_page_past_end(self, widgets: Table) -> None:
        assert widgets.list(Widget(), ListOptions(sort=[1], page=Page(limit=2, offset=10))) == []

    def test_returns_new_records(self, widgets: Table) -> None:
        template = Widget(group="g2")
        found = widgets.list(template)
        assert all(w is not template for w in found)
        assert template == Widget(group="g2")

    def test_bad_sort(self, widgets: Table) -> None:
        with pytest.raises(ValidationError):
            widgets.list(Widget(), ListOptions(sort=[9]))

    def test_empty_table(self, table: Table) -> None:
        assert table.list(Widget()) == []


class TestCount:
    def test_count(self, widgets: Table) -> None:
        assert widgets.count(Widget()) == 5
        assert widgets.count(Widget(group="g1")) == 3

    def test_ignores_page_and_sort(self, widgets: Table) -> None:
        opts = ListOptions(sort=[2], page=Page(limit=1))
        assert widgets.count(Widget(), opts) == 5

    def test_matches_list(self, widgets: Table) -> None:
        template = Widget(group="g2")
        assert widgets.count(template) == len(widgets.list(template))


class TestIntrospection:
    def test_name(self, table: Table) -> None:
        assert table.name(Widget()) == "Widget"

    def test_ddl(self, table: Table) -> None:
        assert table.ddl(Widget())[0].startswith('CREATE TABLE IF NOT EXISTS "Widget"')

    def test_fields_creates_table(self, table: Table) -> None:
        table.fields(Widget())
        with table.store.connect() as conn:
            names = {
                row[0]
                for row in conn.exec_driver_sql("SELECT name FROM sqlite_master WHERE type = 'table'")
            }
        assert "Widget" in names


class TestEngineErrors:
    def test_dropped_table_is_engine_error(self, table: Table) -> None:
        table.insert(Widget(1, "g", "n"))
        with table.store.begin() as conn:
            conn.exec_driver_sql('DROP TABLE "Widget"')
        with pytest.raises(EngineError) as info:
            table.get(Widget(id=1))
        assert "Widget" in (info.value.context.statement or "")
