"""TUI Gantt - WBS scheduling with a terminal Gantt chart."""

__version__ = "0.1.0"
