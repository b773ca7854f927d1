"""Terminal rendering for the editor shell: file tree, file view, tabs, transcript."""

from typing import Dict, Iterable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from . import vfs
from .conversation import ASSISTANT, SYSTEM, USER, Message
from .tabs import TabStrip
from .theme import (
    ACCENT, BORDER, DIM, ERROR, FILE, FOLDER, INFO, MUTED,
    SUCCESS, TEXT, USER_BORDER, WARN,
)
from .vfs import FileNode, Tree as FileTree

__all__ = [
    "render_file_tree", "render_file_view", "render_tab_bar",
    "render_error", "render_warning", "render_success",
    "render_transcript", "render_sessions", "render_models",
    "detect_language",
]

_LANGUAGES = {
    ".tsx": "tsx", ".ts": "typescript", ".jsx": "jsx", ".js": "javascript",
    ".json": "json", ".css": "css", ".scss": "scss", ".html": "html",
    ".md": "markdown", ".py": "python", ".yml": "yaml", ".yaml": "yaml",
    ".toml": "toml", ".sh": "bash",
}


def detect_language(path: str) -> str:
    for ext, lang in _LANGUAGES.items():
        if path.endswith(ext):
            return lang
    return "text"


def _node_label(node: FileNode, active_id: Optional[str]) -> str:
    name = escape(node.name)
    if node.is_folder:
        marker = "▾" if node.expanded else "▸"
        return f"[{FOLDER}]{marker} {name}/[/{FOLDER}]"
    if node.id == active_id:
        return f"[bold {ACCENT}]● {name}[/bold {ACCENT}]"
    return f"[{FILE}]  {name}[/{FILE}]"


def render_file_tree(console: Console, tree: FileTree, active_id: Optional[str] = None,
                     show_all: bool = False):
    """Print the explorer view: folders first, collapsed folders hide children."""
    root = Tree(f"[bold {TEXT}]Explorer[/bold {TEXT}]", guide_style=BORDER)

    def add(parent, node: FileNode):
        branch = parent.add(_node_label(node, active_id))
        if node.is_folder and (node.expanded or show_all):
            for child in vfs.display_children(node):
                add(branch, child)

    for node in sorted(tree, key=lambda n: (not n.is_folder, n.name.lower())):
        add(root, node)
    console.print()
    console.print(root)


def render_file_view(console: Console, node: FileNode):
    syntax = Syntax(node.content or "", detect_language(node.path),
                    theme="monokai", line_numbers=True, word_wrap=False)
    console.print(Panel(syntax, title=f"[bold {TEXT}]{escape(node.path)}[/bold {TEXT}]",
                        title_align="left", border_style=BORDER, padding=(0, 1)))


def render_tab_bar(console: Console, tabs: TabStrip):
    if not tabs.tabs:
        console.print(f"  [{DIM}]No open files[/{DIM}]")
        return
    bar = Text("  ")
    for tab in tabs.tabs:
        if tab.id == tabs.active_id:
            bar.append(f" {tab.name} ", style=f"bold {TEXT} on {BORDER}")
        else:
            bar.append(f" {tab.name} ", style=MUTED)
        bar.append("│", style=BORDER)
    console.print(bar)


def render_error(console: Console, message: str):
    panel = Panel(
        Text(message, style=ERROR),
        title=f"[bold {ERROR}]Error[/bold {ERROR}]",
        title_align="left",
        border_style=ERROR,
        padding=(0, 2),
    )
    console.print()
    console.print(panel)


def render_warning(console: Console, message: str):
    console.print(f"  [{WARN}]⚠ {escape(message)}[/{WARN}]")


def render_success(console: Console, message: str):
    console.print(f"  [{SUCCESS}]✓[/{SUCCESS}] {escape(message)}")


def render_transcript(console: Console, messages: Iterable[Message], include_tool_results: bool = False):
    """Replay a transcript as chat bubbles (the system prompt is skipped)."""
    for msg in messages:
        if msg.role == SYSTEM:
            continue
        is_tool_result = msg.role == USER and msg.id.endswith("-tool")
        if is_tool_result and not include_tool_results:
            continue
        if msg.role == USER and not is_tool_result:
            console.print(Panel(Text(msg.content), title="[bold]you[/bold]", title_align="left",
                                border_style=USER_BORDER, padding=(0, 1)))
        elif msg.role == ASSISTANT:
            style = ERROR if msg.content.startswith("Error:") else TEXT
            console.print(Panel(Text(msg.content, style=style), title=f"[bold {ACCENT}]forge[/bold {ACCENT}]",
                                title_align="left", border_style=ACCENT, padding=(0, 1)))
        else:
            console.print(Text(msg.content, style=DIM))


def render_sessions(console: Console, sessions: List[Dict]):
    if not sessions:
        console.print(f"  [{DIM}]No saved sessions[/{DIM}]")
        return
    table = Table(border_style=BORDER, header_style=f"bold {TEXT}")
    table.add_column("Name")
    table.add_column("Saved", style=DIM)
    table.add_column("Messages", justify="right")
    table.add_column("Files", justify="right")
    for s in sessions:
        table.add_row(str(s["name"]), str(s["created_at"]), str(s["messages"]), str(s.get("files", 0)))
    console.print(table)


def render_models(console: Console, models, active_id: Optional[str] = None):
    table = Table(border_style=BORDER, header_style=f"bold {TEXT}")
    table.add_column("")
    table.add_column("Id", style=INFO)
    table.add_column("Name")
    table.add_column("Provider", style=DIM)
    table.add_column("Description", style=MUTED)
    for m in models:
        mark = f"[{SUCCESS}]●[/{SUCCESS}]" if m.id == active_id else ""
        table.add_row(mark, m.id, m.name, m.provider, m.description)
    console.print(table)
