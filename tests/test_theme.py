"""Tests for the YAML color theme."""

import pytest

from tui_gantt import theme
from tui_gantt.models import TaskKind


@pytest.fixture(autouse=True)
def default_theme():
    theme.load_theme()
    yield
    theme.load_theme()


class TestProgressColor:
    @pytest.mark.parametrize("percent, expected", [
        (0, "#808080"),
        (1, "#d7af5f"),
        (49, "#d7af5f"),
        (50, "#87afd7"),
        (100, "#5faf5f"),
    ])
    def test_thresholds(self, percent, expected):
        assert theme.progress_color(percent).dark == expected

    def test_resolve(self):
        pair = theme.progress_color(100)
        assert pair.resolve(True) == "#5faf5f"
        assert pair.resolve(False) == "#008700"


class TestBarColor:
    def test_phase_wins(self):
        assert theme.bar_color(100, is_phase=True) == theme.GANTT_BAR_PHASE

    def test_by_progress(self):
        assert theme.bar_color(100, False) == theme.GANTT_BAR_DONE
        assert theme.bar_color(30, False) == theme.GANTT_BAR_IN_PROGRESS
        assert theme.bar_color(0, False) == theme.GANTT_BAR_TODO


class TestLoadTheme:
    def test_kind_colors(self):
        assert set(theme.KIND_COLORS) == set(TaskKind)

    def test_project_override(self, tmp_path):
        config_dir = tmp_path / ".tui-gantt"
        config_dir.mkdir()
        (config_dir / "theme.yaml").write_text(
            'gantt:\n  today_marker:\n    dark: "magenta"\n', encoding="utf-8"
        )
        theme.load_theme(tmp_path)
        assert theme.GANTT_TODAY_MARKER.dark == "magenta"
        # Untouched keys keep their defaults
        assert theme.GANTT_TODAY_MARKER.light == "bold #d70000"
        assert theme.GANTT_BAR_DONE.dark == "#5faf5f"


class TestInitTheme:
    def test_copies_default(self, tmp_path):
        dest = theme.init_theme(tmp_path)
        assert dest == tmp_path / ".tui-gantt" / "theme.yaml"
        assert "today_marker" in dest.read_text(encoding="utf-8")

    def test_refuses_to_overwrite(self, tmp_path):
        theme.init_theme(tmp_path)
        with pytest.raises(FileExistsError):
            theme.init_theme(tmp_path)


class TestActiveTheme:
    def test_dark_without_app(self):
        assert theme.is_dark(object()) is True

    @pytest.mark.parametrize("dark, expected", [(True, "#5faf5f"), (False, "#008700")])
    def test_progress_cell_follows_theme(self, dark, expected):
        from tui_gantt.widgets.wbs_table import make_progress_cell

        cell = make_progress_cell(100, dark=dark)
        assert any(span.style == expected for span in cell.spans)
