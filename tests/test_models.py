"""Tests for data models."""

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from tui_gantt.errors import ValidationError
from tui_gantt.models import (
    DEFAULT_DATE_FORMAT,
    KIND_ICONS,
    Dependency,
    DependencyType,
    ProjectConfig,
    StaleReference,
    Task,
    TaskKind,
    ViewConfig,
    ZoomMode,
    format_date,
    parse_datetime,
    parse_dependency_type,
    parse_kind,
    parse_percent,
    parse_zoom_mode,
)


class TestTask:
    def test_default_values(self):
        task = Task(name="Pour slab")
        assert task.name == "Pour slab"
        assert task.parent_id is None
        assert task.wbs_code == ""
        assert task.kind == TaskKind.TASK
        assert task.planned_start is None
        assert task.planned_end is None
        assert task.percent_complete == 0
        assert task.level == 0
        assert task.id  # UUID auto-generated

    def test_frozen(self):
        task = Task(name="Test")
        with pytest.raises(AttributeError):
            task.name = "Changed"  # type: ignore

    def test_replace(self):
        task = Task(name="Test", percent_complete=10)
        updated = replace(task, percent_complete=60)
        assert updated.percent_complete == 60
        assert task.percent_complete == 10
        assert updated.id == task.id

    def test_duration_days(self):
        task = Task(name="A", planned_start=datetime(2024, 1, 1), planned_end=datetime(2024, 1, 10))
        assert task.duration_days == 9
        assert task.has_dates

    def test_duration_undated(self):
        assert Task(name="A").duration_days == 0
        assert not Task(name="A", planned_start=datetime(2024, 1, 1)).has_dates

    def test_kind_flags_and_icon(self):
        assert Task(name="M", kind=TaskKind.MILESTONE).is_milestone
        assert Task(name="P", kind=TaskKind.PHASE).is_phase
        assert Task(name="P", kind=TaskKind.PHASE).icon == KIND_ICONS[TaskKind.PHASE]

    def test_with_level_returns_same_instance_when_unchanged(self):
        task = Task(name="A", level=2)
        assert task.with_level(2) is task
        assert task.with_level(3).level == 3


class TestTaskRecord:
    def test_to_record_uses_external_field_names(self):
        task = Task(
            name="Excavation",
            id="t1",
            parent_id="p1",
            wbs_code="2.1",
            planned_start=datetime(2024, 3, 4),
            planned_end=datetime(2024, 3, 8),
            percent_complete=30,
            order=1,
            level=1,
        )
        record = task.to_record()
        assert record == {
            "id": "t1",
            "parentId": "p1",
            "wbsCode": "2.1",
            "name": "Excavation",
            "description": "",
            "kind": "task",
            "plannedStart": "2024-03-04T00:00:00",
            "plannedEnd": "2024-03-08T00:00:00",
            "percentComplete": 30,
            "order": 1,
            "level": 1,
        }

    def test_from_record(self):
        task = Task.from_record({
            "id": "t1",
            "parentId": None,
            "wbsCode": "1",
            "name": "Site",
            "kind": "phase",
            "plannedStart": "2024-01-01",
            "plannedEnd": "2024-02-01T12:00:00Z",
            "percentComplete": 0,
            "order": 1,
        })
        assert task.kind == TaskKind.PHASE
        assert task.parent_id is None
        assert task.planned_start == datetime(2024, 1, 1)
        assert task.planned_end == datetime(2024, 2, 1, 12, 0)

    def test_from_record_without_id(self):
        with pytest.raises(ValidationError):
            Task.from_record({"name": "orphan"})

    def test_from_record_bad_percent(self):
        with pytest.raises(ValidationError):
            Task.from_record({"id": "x", "name": "x", "percentComplete": 140})

    @pytest.mark.parametrize("key", ["order", "level"])
    def test_from_record_non_integer(self, key):
        with pytest.raises(ValidationError) as exc_info:
            Task.from_record({"id": "x", "name": "x", key: "x"})
        assert exc_info.value.field == key

    def test_empty_parent_is_root(self):
        task = Task.from_record({"id": "x", "name": "x", "parentId": ""})
        assert task.parent_id is None


class TestDependency:
    def test_label(self):
        assert Dependency("a", "b").label() == "FS"
        assert Dependency("a", "b", type=DependencyType.SS, lag_days=2).label() == "SS+2"
        assert Dependency("a", "b", type=DependencyType.FF, lag_days=-1).label() == "FF-1"

    def test_lag(self):
        assert Dependency("a", "b", lag_days=-3).lag == timedelta(days=-3)

    def test_record_fields(self):
        dep = Dependency("a", "b", id="d1", type=DependencyType.SF, lag_days=4)
        assert dep.to_record() == {
            "id": "d1",
            "predecessorId": "a",
            "successorId": "b",
            "type": "SF",
            "lagDays": 4,
        }

    def test_from_record_lowercase_type(self):
        dep = Dependency.from_record({"id": "d", "predecessorId": "a", "successorId": "b", "type": "ss"})
        assert dep.type == DependencyType.SS
        assert dep.lag_days == 0

    def test_from_record_bad_lag(self):
        with pytest.raises(ValidationError):
            Dependency.from_record({"id": "d", "predecessorId": "a", "successorId": "b", "lagDays": "soon"})


class TestParsers:
    def test_parse_datetime_date(self):
        assert parse_datetime(date(2024, 5, 1)) == datetime(2024, 5, 1)

    def test_parse_datetime_aware_to_naive_utc(self):
        aware = datetime(2024, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=-3)))
        assert parse_datetime(aware) == datetime(2024, 5, 1, 15, 0)

    def test_parse_datetime_empty(self):
        assert parse_datetime("") is None
        assert parse_datetime(None) is None

    def test_parse_datetime_invalid(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_datetime("next tuesday", "planned_start")
        assert exc_info.value.field == "planned_start"

    def test_parse_percent_bounds(self):
        assert parse_percent("0") == 0
        assert parse_percent(100) == 100
        with pytest.raises(ValidationError):
            parse_percent(-1)
        with pytest.raises(ValidationError):
            parse_percent("half")

    def test_parse_enums(self):
        assert parse_kind("milestone") == TaskKind.MILESTONE
        assert parse_dependency_type("ff") == DependencyType.FF
        assert parse_zoom_mode("QUARTER") == ZoomMode.QUARTER
        with pytest.raises(ValidationError):
            parse_zoom_mode("year")
        with pytest.raises(ValidationError):
            parse_kind("epic")


class TestFormatDate:
    def test_default_format(self):
        assert DEFAULT_DATE_FORMAT == "DD/MM/YY"
        assert format_date(date(2024, 1, 9)) == "09/01/24"

    def test_iso_preset(self):
        assert format_date(datetime(2024, 1, 9, 8, 0), "YYYY-MM-DD") == "2024-01-09"

    def test_none(self):
        assert format_date(None) == ""

    def test_unknown_format_falls_back_to_iso(self):
        assert format_date(date(2024, 1, 9), "bogus") == "2024-01-09"


class TestConfigModels:
    def test_view_defaults(self):
        view = ViewConfig()
        assert view.zoom_mode == ZoomMode.WEEK
        assert view.show_dependencies is True
        assert view.expanded is None

    def test_project_defaults(self):
        config = ProjectConfig()
        assert config.name == ""
        assert config.date_format == DEFAULT_DATE_FORMAT


def test_stale_reference_str():
    warning = StaleReference(kind="parent", record_id="t1", missing_id="gone", message="parent gone not found")
    assert str(warning) == "parent:t1: parent gone not found"
