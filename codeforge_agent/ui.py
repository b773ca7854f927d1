"""Terminal UI primitives: slash-command palette, prompt styling, startup banner."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape as html_escape
from typing import Callable, Iterable, Sequence

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.styles import Style

from .theme import ACCENT, PROMPT
from .vfs import iter_nodes

PTK_STYLE = Style.from_dict({
    "completion-menu": "bg:default",
    "completion-menu.completion": "bg:default #C8D8EE",
    "completion-menu.completion.current": "bg:#1E2834 #E7EEF8",
    "completion-menu.meta.completion": "bg:default #7AA7E8",
    "completion-menu.meta.completion.current": "bg:#1E2834 #7AA7E8",
    "completion-menu.command": "#57DB9C",
    "completion-menu.args": "#9BB0C9",
    "completion-menu.description": "#7AA7E8",
    "completion-menu.path": "#E6EDF3",
    "scrollbar.background": "bg:default",
    "scrollbar.button": "bg:default",
})


@dataclass(frozen=True)
class SlashCommandSpec:
    command: str
    usage: str
    description: str
    keywords: tuple[str, ...] = ()
    takes_path: bool = False


SLASH_COMMAND_SPECS: tuple[SlashCommandSpec, ...] = (
    SlashCommandSpec("/help", "/help", "Show help", ("docs", "usage", "commands")),
    SlashCommandSpec("/tree", "/tree [all]", "Show the file explorer", ("files", "explorer", "ls")),
    SlashCommandSpec("/open", "/open <path>", "Open a file in a tab", ("edit", "tab"), True),
    SlashCommandSpec("/cat", "/cat [path]", "Print a file", ("show", "view", "read"), True),
    SlashCommandSpec("/new", "/new <path>", "Create an empty file", ("create", "touch", "file"), True),
    SlashCommandSpec("/mkdir", "/mkdir <path>", "Create a folder", ("folder", "directory"), True),
    SlashCommandSpec("/rm", "/rm <path>", "Delete a file or folder", ("delete", "remove"), True),
    SlashCommandSpec("/mv", "/mv <path> <name>", "Rename a file or folder", ("rename", "move"), True),
    SlashCommandSpec("/toggle", "/toggle <path>", "Expand or collapse a folder", ("expand", "collapse"), True),
    SlashCommandSpec("/tabs", "/tabs", "List open tabs", ("editor", "open")),
    SlashCommandSpec("/close", "/close [path]", "Close a tab", ("tab",), True),
    SlashCommandSpec("/model", "/model [id]", "Show or switch model", ("llm", "groq")),
    SlashCommandSpec("/key", "/key <api-key>", "Store your API key", ("token", "credential", "auth")),
    SlashCommandSpec("/clear", "/clear", "Clear the conversation", ("reset", "history")),
    SlashCommandSpec("/save", "/save [name]", "Save session", ("session", "history")),
    SlashCommandSpec("/load", "/load <name>", "Load session", ("session", "history", "restore")),
    SlashCommandSpec("/sessions", "/sessions", "List sessions", ("session", "history")),
    SlashCommandSpec("/config", "/config [key value]", "Show or set config", ("settings",)),
    SlashCommandSpec("/stats", "/stats", "Session stats", ("usage", "messages", "tools")),
    SlashCommandSpec("/quit", "/quit", "Quit", ("exit",)),
)

SLASH_COMMANDS = [spec.command for spec in SLASH_COMMAND_SPECS]
MAX_SLASH_MENU_ITEMS = 16


def build_banner(version: str) -> str:
    return (
        f"[bold {ACCENT}]codeforge[/bold {ACCENT}] "
        f"[dim]v{version} · AI-first code editor[/dim]"
    )


def build_help_text() -> str:
    usage_width = max(len(spec.usage) for spec in SLASH_COMMAND_SPECS)
    lines = ["", f"[bold {ACCENT}]Commands:[/bold {ACCENT}]"]
    for spec in SLASH_COMMAND_SPECS:
        lines.append(f"  {spec.usage:<{usage_width}}  {spec.description}")

    lines.extend([
        "",
        f"[bold {ACCENT}]Tips:[/bold {ACCENT}]",
        "  Anything not starting with / is sent to the assistant",
        "  Paths may be absolute (/project/src/index.tsx), ./relative or a bare file name",
        "  Esc → Enter   Multi-line input",
        "  Ctrl-D ×2      Exit safely",
    ])
    return "\n".join(lines)


HELP_TEXT = build_help_text()


def make_prompt_html(active_name: str | None = None) -> HTML:
    tab = f'<style fg="#66788A"> [{html_escape(active_name)}]</style>' if active_name else ""
    return HTML(
        f'<style fg="{PROMPT}">forge</style>{tab}'
        f'<style fg="#66788A"> › </style>'
    )


def render_startup(console, config, credentials, workspace) -> None:
    model = config.model_option
    key_status = "[green]✓[/green]" if credentials.has_api_key() else "[red]✗ /key to set[/red]"
    if credentials.is_default_key:
        key_status = "[yellow]shared default[/yellow]"
    files = sum(1 for n in iter_nodes(workspace.tree) if n.is_file)

    console.print(
        f"[dim]model[/dim] [bold]{model.name}[/bold] [dim]({model.id})[/dim]"
        f" [dim]• key[/dim] {key_status}"
        f" [dim]• tool calls ≤[/dim] {config.max_tool_calls}"
        f" [dim]• temperature[/dim] {config.temperature:g}"
    )
    console.print(f"[dim]workspace[/dim] {workspace.root} [dim]({files} files)[/dim]")
    console.print(f"[dim]config[/dim] {config._config_source}")
    console.print("[dim]/help · /tree · /open · /model · Ctrl+C to cancel[/dim]")
    console.print()


def _fuzzy_span_score(query: str, candidate: str) -> int | None:
    query_chars = query.lower().lstrip("/")
    candidate_chars = candidate.lower().lstrip("/")
    if not query_chars:
        return 0

    positions = []
    cursor = 0
    for char in query_chars:
        index = candidate_chars.find(char, cursor)
        if index < 0:
            return None
        positions.append(index)
        cursor = index + 1
    return positions[-1] - positions[0] + 1


def _command_sort_key(token: str, spec: SlashCommandSpec, order_map: dict[str, int]):
    lowered = token.lower().lstrip("/")
    command_only = spec.command.lower().lstrip("/")
    order = order_map[spec.command]

    if not lowered or command_only.startswith(lowered):
        return (0, 0, order)

    contains_pos = command_only.find(lowered)
    if contains_pos >= 0:
        return (1, contains_pos, order)

    fuzzy_span = _fuzzy_span_score(lowered, command_only)
    if fuzzy_span is not None:
        return (2, fuzzy_span, order)

    haystack = " ".join((spec.description, *spec.keywords)).lower()
    keyword_pos = haystack.find(lowered)
    if keyword_pos >= 0:
        return (3, keyword_pos, order)
    return None


class SlashCommandCompleter(Completer):
    """Slash-command palette with prefix+fuzzy matching.

    After a path-taking command, completes workspace paths supplied by
    ``path_source`` instead.
    """

    def __init__(
        self,
        specs: Sequence[SlashCommandSpec] = SLASH_COMMAND_SPECS,
        max_items: int = MAX_SLASH_MENU_ITEMS,
        path_source: Callable[[], Iterable[str]] | None = None,
    ):
        self.specs = list(specs)
        self.by_command = {spec.command: spec for spec in self.specs}
        self.max_items = max_items
        self.path_source = path_source
        self.order_map = {spec.command: index for index, spec in enumerate(self.specs)}
        self.usage_width = max(len(spec.usage) for spec in self.specs)

    def _display(self, spec: SlashCommandSpec):
        display = [("class:completion-menu.command", spec.command)]
        args = spec.usage[len(spec.command):]
        if args:
            display.append(("class:completion-menu.args", args))
        display.append(("", " " * max(2, self.usage_width - len(spec.usage) + 1)))
        display.append(("class:completion-menu.description", spec.description))
        return display

    def _path_completions(self, fragment: str):
        if self.path_source is None:
            return
        lowered = fragment.lower()
        matches = [p for p in self.path_source() if lowered in p.lower()]
        matches.sort(key=lambda p: (not p.lower().startswith(lowered), len(p), p))
        for path in matches[: self.max_items]:
            yield Completion(text=path, start_position=-len(fragment),
                             display=[("class:completion-menu.path", path)])

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor.lstrip()
        if not text.startswith("/"):
            return

        token, sep, rest = text.partition(" ")
        if sep:
            spec = self.by_command.get(token)
            if spec is not None and spec.takes_path and " " not in rest:
                yield from self._path_completions(rest)
            return

        ranked = []
        for spec in self.specs:
            key = _command_sort_key(token, spec, self.order_map)
            if key is not None:
                ranked.append((key, spec))
        ranked.sort(key=lambda item: item[0])

        for _, spec in ranked[: self.max_items]:
            yield Completion(
                text=spec.command,
                start_position=-len(token),
                display=self._display(spec),
                display_meta="",
            )
