"""Unified Rich theme and reusable UI helper functions for the CLI."""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.theme import Theme

from config.exceptions import SpiderError
from models.enums import NovelState, TargetState

SPIDER_THEME = Theme({
    "app.title": "bold",
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "info": "blue",
    "muted": "dim",
    "accent": "cyan",
    "stat.label": "dim",
    "stat.value": "bold",
    "novel.id": "blue",
    "novel.name": "bold cyan",
})

_STATE_COLORS = {
    NovelState.UPDATING: "green",
    NovelState.FINISHED: "cyan",
}

_TARGET_COLORS = {
    TargetState.READY: "green",
    TargetState.FAILED: "red",
}


def get_console() -> Console:
    """Return a Console instance with the spider theme applied."""
    return Console(theme=SPIDER_THEME)


def app_header(title: str = "spider-novel") -> Rule:
    """Return a Rule element for the application header banner."""
    return Rule(title=f"[bold]{title}[/]", style="dim")


def command_panel(title: str, fields: dict[str, str]) -> Panel:
    """Return a Panel displaying command parameters.

    Args:
        title: Panel title (e.g. "抓取小说列表").
        fields: Ordered dict of label -> value pairs.
    """
    lines = []
    for label, value in fields.items():
        lines.append(f"  [stat.label]{label}:[/] [stat.value]{value}[/]")
    body = "\n".join(lines)
    return Panel(body, title=f"[bold]{title}[/]", box=box.ROUNDED, border_style="dim", padding=(0, 2))


def success_panel(title: str, body: str) -> Panel:
    """Return a green-bordered Panel for success results."""
    return Panel(body, title=f"[success]{title}[/]", box=box.ROUNDED, border_style="green", padding=(0, 2))


def state_label(state) -> str:
    if state is None:
        return "[muted]-[/]"
    color = _STATE_COLORS.get(state, "white")
    return f"[{color}]{state.value}[/]"


def error_line(error: SpiderError) -> str:
    return f"[error]✗[/] [muted]{type(error).__name__}:[/] {error}"


def sorts_table(sorts: list) -> Table:
    table = Table(title="分类列表", box=box.ROUNDED, border_style="dim")
    table.add_column("ID", style="novel.id")
    table.add_column("名称", style="bold")
    for s in sorts:
        table.add_row(str(s.id), s.name)
    return table


def novels_table(title: str = "小说列表") -> Table:
    """Return an empty table for streamed novel rows; fill with `novel_row`."""
    table = Table(title=title, box=box.ROUNDED, border_style="dim", show_lines=False)
    table.add_column("ID", style="novel.id")
    table.add_column("书名", style="novel.name")
    table.add_column("作者")
    table.add_column("最新章节", style="muted")
    table.add_column("更新时间", style="muted")
    table.add_column("状态")
    return table


def novel_row(novel) -> tuple:
    updated = novel.last_updated_at.strftime("%Y-%m-%d %H:%M") if novel.last_updated_at else "-"
    return (
        str(novel.id),
        novel.name,
        novel.author or "-",
        novel.last_updated_section_name or "-",
        updated,
        state_label(novel.state),
    )


def novel_panel(novel) -> Panel:
    """Return a Panel with one novel's metadata.

    Args:
        novel: Novel object with .id, .name, .author, .intro and update fields.
    """
    intro = novel.intro or ""
    if len(intro) > 200:
        intro = intro[:200] + "..."
    updated = novel.last_updated_at.isoformat() if novel.last_updated_at else "-"

    body = (
        f"  [stat.label]作者:[/] [stat.value]{novel.author or '-'}[/]  "
        f"[muted]|[/]  [stat.label]状态:[/] {state_label(novel.state)}\n"
        f"  [stat.label]最新:[/] {novel.last_updated_section_name or '-'} [muted]({updated})[/]\n"
        f"  [stat.label]封面:[/] [muted]{novel.cover or '-'}[/]\n"
        f"  [stat.label]简介:[/] {intro}"
    )
    return Panel(
        body,
        title=f"[bold]{novel.name}[/] [muted](ID: {novel.id})[/]",
        box=box.ROUNDED,
        border_style="dim",
        padding=(0, 2),
    )


def sweep_table(reports: list) -> Table:
    table = Table(title="巡检结果", box=box.ROUNDED, border_style="dim")
    table.add_column("站点", style="bold")
    table.add_column("状态")
    table.add_column("分类", justify="right")
    table.add_column("小说", justify="right")
    table.add_column("错误", justify="right")
    for r in reports:
        color = _TARGET_COLORS.get(r.state, "yellow")
        table.add_row(
            r.spider_id,
            f"[{color}]{r.state.value}[/]",
            str(r.categories),
            str(r.novels),
            str(r.errors) if not r.failure else f"{r.errors} [error]({r.failure})[/]",
        )
    return table
