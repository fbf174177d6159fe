from __future__ import annotations

from collections import Counter
from typing import Iterable, Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .events import Error, Moved, NoRuleMatched, OutcomeEvent, Queued, Skipped, format_event
from .models import CreatedDateCondition, FileTypeCondition, NamePatternCondition, PendingFile, Rule

# Color constants for status indicators
SUCCESS_COLOR = "green"
WARNING_COLOR = "yellow"
ERROR_COLOR = "red"
DIM_COLOR = "dim"

SUCCESS_SYMBOL = "✓"
WARNING_SYMBOL = "⚠"
ERROR_SYMBOL = "✗"
SKIP_SYMBOL = "⊘"
QUEUE_SYMBOL = "○"

_EVENT_STYLES = {
    Moved.kind: (SUCCESS_SYMBOL, SUCCESS_COLOR),
    Queued.kind: (QUEUE_SYMBOL, "cyan"),
    NoRuleMatched.kind: (WARNING_SYMBOL, WARNING_COLOR),
    Skipped.kind: (SKIP_SYMBOL, DIM_COLOR),
    Error.kind: (ERROR_SYMBOL, ERROR_COLOR),
}


def describe_condition(rule: Rule) -> str:
    condition = rule.condition
    if isinstance(condition, FileTypeCondition):
        return f"file type = {condition.value}"
    if isinstance(condition, NamePatternCondition):
        return f"name ~ {condition.pattern}"
    if isinstance(condition, CreatedDateCondition):
        return f"created {condition.operator} {condition.value} (never matches)"
    return repr(condition)


def _format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


class SummaryTableRenderer:
    """Renders rules, pending files and watch outcomes with Rich."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def render_rules_table(self, rules: Sequence[Rule]) -> Table:
        table = Table(title="Rules", show_header=True, header_style="bold")
        table.add_column("#", justify="right", style=DIM_COLOR)
        table.add_column("Name", style="cyan")
        table.add_column("Condition")
        table.add_column("Destination")
        for index, rule in enumerate(rules):
            destination = rule.destination or f"[{DIM_COLOR}](none)[/{DIM_COLOR}]"
            table.add_row(str(index), rule.name or "", describe_condition(rule), destination)
        return table

    def render_pending_table(self, entries: Iterable[PendingFile]) -> Table:
        table = Table(
            title="Pending Review",
            caption="Unresolved files stay where they are in the watched folder.",
            show_header=True,
            header_style="bold",
        )
        table.add_column("File", style="cyan")
        table.add_column("Type")
        table.add_column("Size", justify="right")
        table.add_column("Detected")
        for entry in entries:
            table.add_row(
                str(entry.path),
                entry.extension,
                _format_size(entry.size),
                entry.detected_at.strftime("%Y-%m-%d %H:%M:%S"),
            )
        return table

    @staticmethod
    def render_event(event: OutcomeEvent) -> Text:
        symbol, color = _EVENT_STYLES.get(event.kind, ("?", DIM_COLOR))
        return Text(f"{symbol} {format_event(event)}", style=color)

    @staticmethod
    def render_session_table(counts: Counter) -> Table:
        table = Table(title="Watch Summary", show_header=True, header_style="bold")
        table.add_column("Outcome", style="cyan", no_wrap=True)
        table.add_column("Count", justify="right")
        for label, kind in (
            ("Moved", Moved.kind),
            ("Queued", Queued.kind),
            ("No rule", NoRuleMatched.kind),
            ("Skipped", Skipped.kind),
            ("Errors", Error.kind),
        ):
            value = counts.get(kind, 0)
            symbol, color = _EVENT_STYLES[kind]
            if value == 0:
                table.add_row(label, f"[{DIM_COLOR}]0[/{DIM_COLOR}]")
            else:
                table.add_row(label, f"[{color}]{symbol} {value}[/{color}]")
        return table


__all__ = ["SummaryTableRenderer", "describe_condition"]
