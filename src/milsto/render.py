"""Rich renderables for the milestone list and the static screens."""
from __future__ import annotations

from datetime import datetime, tzinfo
from typing import List, Optional, Sequence, Tuple

from rich.cells import cell_len
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import __version__
from .countdown import countdown
from .models import Milestone, to_local
from .state import DisplayFlags

EMPTY_STATE = "No Milestones"
TARGET_FORMAT = "%Y-%m-%d %H:%M"
SHORT_ID_LENGTH = 8
HELP_LINES = (
    "• Need help?",
    "• Found a bug?",
    "• Have a question?",
    "• Have ideas or feedback?",
)
SUPPORT_EMAIL = "boraozturksalih@gmail.com"


def _masked(text: str, visible: bool, style: str = "") -> Text:
    """Hidden fields keep their width so the layout does not shift."""
    if visible:
        return Text(text, style=style)
    return Text(" " * cell_len(text))


def format_target(target: datetime, tz: Optional[tzinfo] = None) -> str:
    return to_local(target, tz).strftime(TARGET_FORMAT)


def row_cells(
    milestone: Milestone,
    flags: DisplayFlags,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> Tuple[Text, Text, Text, Text, Text]:
    """Cells for one row: short id, title, countdown, target, notes."""
    return (
        Text(milestone.id[:SHORT_ID_LENGTH], style="dim cyan"),
        _masked(milestone.title, flags.showTitle, style="bold"),
        _masked(countdown(milestone.target, now), flags.showCountdown, style="magenta"),
        _masked(format_target(milestone.target, tz), flags.showTarget, style="dim"),
        _masked(milestone.notes, flags.showNotes, style="dim italic"),
    )


def section_table(
    label: str,
    milestones: Sequence[Milestone],
    flags: DisplayFlags,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> Table:
    table = Table(title=label, title_justify="left", title_style="bold", expand=True, show_edge=False)
    table.add_column("ID", no_wrap=True)
    table.add_column("Title")
    table.add_column("Countdown", justify="right", no_wrap=True)
    table.add_column("Target", no_wrap=True)
    table.add_column("Notes")
    for milestone in milestones:
        table.add_row(*row_cells(milestone, flags, now, tz))
    return table


def flags_legend(flags: DisplayFlags) -> Text:
    """Toolbar-style legend; a filled marker means the field is shown."""
    legend = Text()
    for letter, shown in (
        ("t", flags.showTitle),
        ("d", flags.showTarget),
        ("c", flags.showCountdown),
        ("n", flags.showNotes),
    ):
        legend.append(f" {letter} ", style="reverse bold" if shown else "dim")
    return legend


def list_view(
    sections: Sequence[Tuple[str, List[Milestone]]],
    flags: DisplayFlags,
    now: datetime,
    query: str = "",
    tz: Optional[tzinfo] = None,
) -> RenderableType:
    title = "Milestones" if not query else f"Milestones matching '{query}'"
    header = Text.assemble((title, "bold"), "  ", flags_legend(flags))
    if not sections:
        return Group(header, Panel(Text(EMPTY_STATE, justify="center", style="dim"), expand=True))
    return Group(header, *(section_table(label, items, flags, now, tz) for label, items in sections))


def settings_view(flags: DisplayFlags, state_dir: str) -> Table:
    table = Table(title="Settings", show_header=False, title_style="bold")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in flags.to_dict().items():
        table.add_row(key, "on" if value else "off")
    table.add_row("data", state_dir)
    table.add_row("", Text(f"milsto version {__version__}", style="dim"))
    return table


def help_view() -> Panel:
    body = Text("\n".join(HELP_LINES) + "\n\n")
    body.append("Email to ")
    body.append(SUPPORT_EMAIL, style="bold")
    return Panel(body, title="Help & Support", expand=False)
