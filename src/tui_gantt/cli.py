"""CLI entry point using Click."""

from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path
from typing import NoReturn

import click

from tui_gantt.errors import SchedulingError, ValidationError
from tui_gantt.models import DependencyType, TaskKind, ZoomMode

ZOOM_CHOICES = [m.value for m in ZoomMode]
KIND_CHOICES = [k.value for k in TaskKind]
TYPE_CHOICES = [t.value for t in DependencyType]


class _DefaultGroup(click.Group):
    """Insert 'run' when the first arg is not a registered subcommand."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.no_args_is_help = False  # bare `tui-gantt` opens the TUI too

    def invoke(self, ctx):
        # No args left after group options: default to 'run'
        if not ctx._protected_args and not ctx.args:
            ctx._protected_args = ["run"]
        return super().invoke(ctx)

    def resolve_command(self, ctx, args):
        cmd_name = args[0] if args else None
        if cmd_name and cmd_name in self.commands:
            return super().resolve_command(ctx, args)
        return super().resolve_command(ctx, ["run"] + list(args))


def _project_dir(path: str) -> Path:
    project_dir = Path(path).resolve()
    if project_dir.exists() and not project_dir.is_dir():
        click.echo(f"Error: '{project_dir}' is not a directory.", err=True)
        raise SystemExit(1)
    return project_dir


def _open_scheduler(project_dir: Path):
    from tui_gantt.config import LayoutSettings, get_schedule_path, load_config, load_settings
    from tui_gantt.scheduler import Scheduler
    from tui_gantt.store import YamlFileStore

    config = load_config(project_dir)
    settings = LayoutSettings.from_settings(load_settings(project_dir))
    store = YamlFileStore(get_schedule_path(project_dir))
    return Scheduler(store, settings=settings, weighting=config.view.weighting), config


def _resolve_task(scheduler, ref: str) -> str:
    """Accept a task id or a WBS code."""
    return scheduler.resolve_ref(ref)


def _parse_after(scheduler, values: tuple[str, ...]) -> list[tuple[str, str, int]]:
    """Parse ``REF[:TYPE[:LAG]]`` predecessor options."""
    from tui_gantt.scheduler import parse_predecessor_refs

    links: list[tuple[str, str, int]] = []
    for value in values:
        for ref, dep_type, lag in parse_predecessor_refs(value):
            links.append((_resolve_task(scheduler, ref), dep_type, lag))
    return links


def _fail(exc: Exception) -> NoReturn:
    click.echo(f"Error: {exc}", err=True)
    raise SystemExit(1)


@click.group(cls=_DefaultGroup)
@click.option("--no-color", is_flag=True, help="Disable color output")
@click.option("--demo", is_flag=True, help="Launch with a demo construction schedule (in memory)")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (default: $TUI_GANTT_LOG_LEVEL or WARNING)",
)
@click.version_option(package_name="tui-gantt")
@click.pass_context
def main(ctx, no_color: bool, demo: bool, log_level: str | None) -> None:
    """TUI Gantt - terminal project scheduling with WBS and Gantt chart."""
    ctx.ensure_object(dict)
    ctx.obj["no_color"] = no_color
    ctx.obj["demo"] = demo
    ctx.obj["log_level"] = log_level
    if ctx.invoked_subcommand != "run":
        from tui_gantt.logging_config import configure_logging

        configure_logging(log_level)


@main.command()
@click.argument("path", default=".", type=click.Path())
@click.pass_context
def run(ctx, path: str) -> None:
    """Open the schedule stored in PATH in the terminal UI."""
    from tui_gantt.app import GanttApp
    from tui_gantt.config import CONFIG_DIR
    from tui_gantt.logging_config import LOG_FILE_NAME, configure_logging

    no_color = ctx.obj["no_color"]

    if ctx.obj["demo"]:
        from tui_gantt.demo_data import build_demo_store

        app = GanttApp(store=build_demo_store(), no_color=no_color, demo_mode=True)
    else:
        project_dir = Path(path).resolve()
        if not project_dir.exists():
            if click.confirm(f"'{project_dir}' does not exist. Create it?"):
                project_dir.mkdir(parents=True, exist_ok=True)
                click.echo(f"Created {project_dir}")
            else:
                raise SystemExit(0)
        elif not project_dir.is_dir():
            click.echo(f"Error: '{project_dir}' is not a directory.", err=True)
            raise SystemExit(1)
        configure_logging(ctx.obj["log_level"], log_file=project_dir / CONFIG_DIR / LOG_FILE_NAME)
        app = GanttApp(project_dir=project_dir, no_color=no_color)
    app.run()


@main.command("init")
@click.argument("path", default=".", type=click.Path())
@click.option("--name", prompt="Project name", default="My Project", help="Project name")
def init_cmd(path: str, name: str) -> None:
    """Initialize a new project (config.toml + empty schedule)."""
    from tui_gantt.config import get_schedule_path, save_config
    from tui_gantt.models import ProjectConfig
    from tui_gantt.store import YamlFileStore

    project_dir = _project_dir(path)
    schedule_path = get_schedule_path(project_dir)
    if schedule_path.exists():
        click.echo(f"Schedule already exists: {schedule_path}", err=True)
        raise SystemExit(1)

    project_dir.mkdir(parents=True, exist_ok=True)
    save_config(project_dir, ProjectConfig(name=name))
    click.echo(f"Created {project_dir / '.tui-gantt' / 'config.toml'}")

    try:
        YamlFileStore(schedule_path).initialize()
    except SchedulingError as e:
        _fail(e)
    click.echo(f"Created {schedule_path}")
    click.echo(f"\nProject initialized at {project_dir}")
    click.echo("Run 'tui-gantt' to open the project.")


@main.command("init-theme")
@click.argument("path", default=".", type=click.Path())
def init_theme_cmd(path: str) -> None:
    """Copy default theme to .tui-gantt/theme.yaml for customization."""
    from tui_gantt.theme import init_theme

    project_dir = _project_dir(path)
    try:
        dest = init_theme(project_dir)
    except FileExistsError as e:
        click.echo(f"Already exists: {e}", err=True)
        raise SystemExit(1)
    click.echo(f"Created {dest}")


@main.command("add-task")
@click.argument("path", type=click.Path())
@click.option("--name", required=True, help="Task name")
@click.option("--kind", type=click.Choice(KIND_CHOICES), default="task", show_default=True)
@click.option("--start", "start", required=True, help="Planned start (ISO date)")
@click.option("--end", "end", default=None, help="Planned end (ISO date; milestones may omit)")
@click.option("--parent", default=None, help="Parent task id or WBS code")
@click.option("--percent", default=0, type=int, help="Percent complete (0-100)")
@click.option("--description", default="", help="Description")
@click.option("--after", multiple=True, help="Predecessor as REF[:TYPE[:LAG]], repeatable")
def add_task_cmd(path, name, kind, start, end, parent, percent, description, after) -> None:
    """Create a task and print its id and WBS code."""
    scheduler, _ = _open_scheduler(_project_dir(path))
    try:
        task = scheduler.create_task(
            name,
            kind,
            start,
            end,
            parent_id=_resolve_task(scheduler, parent) if parent else None,
            description=description,
            percent_complete=percent,
            predecessors=_parse_after(scheduler, after),
        )
    except SchedulingError as e:
        _fail(e)
    click.echo(f"{task.wbs_code}\t{task.id}")


@main.command("update-task")
@click.argument("path", type=click.Path())
@click.argument("task")
@click.option("--name", default=None)
@click.option("--kind", type=click.Choice(KIND_CHOICES), default=None)
@click.option("--start", "start", default=None, help="Planned start (ISO date)")
@click.option("--end", "end", default=None, help="Planned end (ISO date)")
@click.option("--parent", default=None, help="New parent id or WBS code ('-' for root)")
@click.option("--percent", default=None, type=int)
@click.option("--description", default=None)
def update_task_cmd(path, task, name, kind, start, end, parent, percent, description) -> None:
    """Update fields of TASK (id or WBS code)."""
    scheduler, _ = _open_scheduler(_project_dir(path))
    fields: dict = {}
    for key, value in (
        ("name", name), ("kind", kind), ("planned_start", start), ("planned_end", end),
        ("percent_complete", percent), ("description", description),
    ):
        if value is not None:
            fields[key] = value
    try:
        if parent is not None:
            fields["parent_id"] = None if parent == "-" else _resolve_task(scheduler, parent)
        updated = scheduler.update_task(_resolve_task(scheduler, task), **fields)
    except SchedulingError as e:
        _fail(e)
    click.echo(f"Updated {updated.wbs_code} {updated.name}")


@main.command("rm-task")
@click.argument("path", type=click.Path())
@click.argument("task")
def rm_task_cmd(path, task) -> None:
    """Delete TASK and every dependency touching it."""
    scheduler, _ = _open_scheduler(_project_dir(path))
    try:
        removed = scheduler.delete_task(_resolve_task(scheduler, task))
    except SchedulingError as e:
        _fail(e)
    click.echo(f"Deleted task ({removed} dependencies removed)")


@main.command("add-dep")
@click.argument("path", type=click.Path())
@click.argument("predecessor")
@click.argument("successor")
@click.option("--type", "dep_type", type=click.Choice(TYPE_CHOICES), default="FS", show_default=True)
@click.option("--lag", default=0, type=int, help="Lag in days (negative = lead)")
def add_dep_cmd(path, predecessor, successor, dep_type, lag) -> None:
    """Link PREDECESSOR -> SUCCESSOR (ids or WBS codes)."""
    scheduler, _ = _open_scheduler(_project_dir(path))
    try:
        dep = scheduler.create_dependency(
            _resolve_task(scheduler, predecessor),
            _resolve_task(scheduler, successor),
            dep_type,
            lag,
        )
    except SchedulingError as e:
        _fail(e)
    click.echo(f"{dep.label()}\t{dep.id}")


@main.command("rm-dep")
@click.argument("path", type=click.Path())
@click.argument("dependency_id")
def rm_dep_cmd(path, dependency_id) -> None:
    """Delete a dependency by id."""
    scheduler, _ = _open_scheduler(_project_dir(path))
    try:
        scheduler.delete_dependency(dependency_id)
    except SchedulingError as e:
        _fail(e)
    click.echo("Deleted dependency")


@main.command("show")
@click.argument("path", default=".", type=click.Path())
@click.option("--zoom", type=click.Choice(ZOOM_CHOICES), default=None)
@click.option("--collapse-all", is_flag=True, help="Show root tasks only")
@click.pass_context
def show_cmd(ctx, path, zoom, collapse_all) -> None:
    """Print the WBS with rolled-up progress and predecessors."""
    from rich.console import Console
    from rich.table import Table

    from tui_gantt.models import format_date
    from tui_gantt.progress import auto_status
    from tui_gantt.wbs import all_parent_ids

    project_dir = _project_dir(path)
    scheduler, config = _open_scheduler(project_dir)
    try:
        tasks = scheduler.store.list_tasks()
        expanded = set() if collapse_all else all_parent_ids(tasks)
        view = scheduler.refresh(expanded, ZoomMode(zoom) if zoom else config.view.zoom_mode)
    except SchedulingError as e:
        _fail(e)

    table = Table(title=config.name or project_dir.name)
    table.add_column("WBS", style="dim")
    table.add_column("Name")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Days", justify="right")
    table.add_column("%", justify="right")
    table.add_column("Predecessors")
    table.add_column("Status")
    now = datetime.now()
    for row in view.rows:
        task = row.task
        status = "" if row.has_children else auto_status(task, view.tasks_by_id, view.dependencies, now).label
        table.add_row(
            task.wbs_code,
            f"{'  ' * row.level}{task.icon} {task.name}",
            format_date(task.planned_start, config.date_format),
            format_date(task.planned_end, config.date_format),
            str(task.duration_days),
            str(view.progress.get(task.id, 0)),
            ", ".join(view.predecessor_labels(task.id)),
            status,
        )

    console = Console(no_color=ctx.obj["no_color"])
    console.print(table)
    for warning in view.warnings:
        console.print(f"[yellow]warning:[/yellow] {warning}")
    for violation in view.violations:
        console.print(f"[yellow]constraint:[/yellow] {violation}")


@main.command("layout")
@click.argument("path", default=".", type=click.Path())
@click.option("--zoom", type=click.Choice(ZOOM_CHOICES), default=None)
@click.option("--today", default=None, help="Reference date (ISO) for the today marker")
def layout_cmd(path, zoom, today) -> None:
    """Print timeline geometry and connector paths as JSON."""
    from tui_gantt.wbs import all_parent_ids

    project_dir = _project_dir(path)
    scheduler, config = _open_scheduler(project_dir)
    try:
        ref_day = date.fromisoformat(today) if today else None
    except ValueError:
        _fail(ValidationError("today", f"invalid ISO date: {today!r}"))
    try:
        tasks = scheduler.store.list_tasks()
        view = scheduler.refresh(
            all_parent_ids(tasks),
            ZoomMode(zoom) if zoom else config.view.zoom_mode,
            today=ref_day,
        )
    except SchedulingError as e:
        _fail(e)

    data = view.layout.to_dict()
    data["rows"] = [
        {"taskId": row.task.id, "wbsCode": row.task.wbs_code, "level": row.level, "index": row.index}
        for row in view.rows
    ]
    data["progress"] = view.progress
    data["paths"] = [
        {"dependencyId": p.dependency.id, "type": p.dependency.type.value, "d": p.svg_path(), "arrow": p.svg_arrow()}
        for p in view.paths
    ]
    data["warnings"] = [str(w) for w in view.warnings]
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))
