"""Slash-command routing and handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import vfs
from .agent import Agent
from .config import CONFIG_FIELDS, MODELS, Config
from .credentials import CredentialStore
from .rendering import (
    render_file_tree, render_file_view, render_models, render_sessions,
    render_success, render_tab_bar, render_transcript, render_warning,
)
from .session import list_sessions, load_session, restore_session, save_session
from .tabs import TabStrip
from .theme import ACCENT, BORDER, DIM, TEXT
from .ui import HELP_TEXT, SLASH_COMMANDS
from .workspace import Workspace

_SLASH_ALIASES = {
    "/h": "/help", "/?": "/help", "/exit": "/quit", "/q": "/quit",
    "/ls": "/tree", "/reset": "/clear", "/delete": "/rm", "/rename": "/mv",
}


@dataclass
class CommandContext:
    console: Console
    agent: Agent
    config: Config
    workspace: Workspace
    tabs: TabStrip
    credentials: CredentialStore


CommandHandler = Callable[[CommandContext, list[str]], str]


def build_context(console: Console, agent: Agent, config: Config,
                  workspace: Workspace, credentials: CredentialStore) -> CommandContext:
    """Create the REPL context; deleting a node closes its tabs."""
    tabs = TabStrip()
    workspace.on_delete(tabs.close_many)
    return CommandContext(console=console, agent=agent, config=config,
                          workspace=workspace, tabs=tabs, credentials=credentials)


def _resolve_command(raw_cmd: str) -> str:
    """Resolve abbreviated slash commands via exact/alias/prefix matching."""
    cmd = raw_cmd.lower()
    if cmd == "/":
        return SLASH_COMMANDS[0]
    if cmd in SLASH_COMMANDS:
        return cmd
    if cmd in _SLASH_ALIASES:
        return _SLASH_ALIASES[cmd]

    matches = [candidate for candidate in SLASH_COMMANDS if candidate.startswith(cmd)]
    if len(matches) == 1:
        return matches[0]
    return cmd


def handle_command(command: str, ctx: CommandContext) -> str:
    """Handle one slash command string; returns "quit" to end the REPL."""
    parts = command.split()
    if not parts:
        return ""

    cmd = _resolve_command(parts[0])
    handler = COMMAND_HANDLERS.get(cmd)
    if not handler:
        render_warning(ctx.console, f"Unknown: {cmd}. Try /help")
        return ""
    return handler(ctx, parts[1:])


# ── Helpers ──


def _require_arg(ctx: CommandContext, args: list[str], usage: str) -> str | None:
    if not args:
        render_warning(ctx.console, f"Usage: {usage}")
        return None
    return args[0]


def _resolve_node(ctx: CommandContext, path: str) -> vfs.FileNode | None:
    node = ctx.workspace.resolve(path)
    if node is None:
        render_warning(ctx.console, f"Not found: {path}")
    return node


def _open_in_tab(ctx: CommandContext, node: vfs.FileNode):
    ctx.tabs.open(node.id, node.name)
    ctx.workspace.set_active_file(node.id)


def _sync_active_from_tabs(ctx: CommandContext):
    ctx.workspace.set_active_file(ctx.tabs.active_id)


def show_config_panel(console: Console, config: Config) -> None:
    table = Table(show_header=False, border_style=BORDER, padding=(0, 2), box=None)
    table.add_column("Key", style=f"bold {ACCENT}", min_width=14)
    table.add_column("Value", style=TEXT)
    for key, value in config.summary().items():
        table.add_row(key, str(value))
    console.print(Panel(table, title=f"[bold {ACCENT}] Configuration [/bold {ACCENT}]",
                        title_align="left", border_style=BORDER, padding=(0, 1)))


# ── Handlers ──


def _cmd_quit(ctx: CommandContext, args: list[str]) -> str:
    return "quit"


def _cmd_help(ctx: CommandContext, args: list[str]) -> str:
    ctx.console.print(HELP_TEXT)
    return ""


def _cmd_tree(ctx: CommandContext, args: list[str]) -> str:
    show_all = bool(args) and args[0].lower() in ("all", "-a", "--all")
    render_file_tree(ctx.console, ctx.workspace.tree, ctx.workspace.active_file_id, show_all=show_all)
    return ""


def _cmd_open(ctx: CommandContext, args: list[str]) -> str:
    path = _require_arg(ctx, args, "/open <path>")
    if path is None:
        return ""
    node = _resolve_node(ctx, path)
    if node is None:
        return ""
    if node.is_folder:
        ctx.workspace.toggle_expand(node.id)
        render_file_tree(ctx.console, ctx.workspace.tree, ctx.workspace.active_file_id)
        return ""
    _open_in_tab(ctx, node)
    render_tab_bar(ctx.console, ctx.tabs)
    render_file_view(ctx.console, node)
    return ""


def _cmd_cat(ctx: CommandContext, args: list[str]) -> str:
    if args:
        node = _resolve_node(ctx, args[0])
    else:
        node = ctx.workspace.active_file
        if node is None:
            render_warning(ctx.console, "No active file. Usage: /cat <path>")
    if node is None:
        return ""
    if not node.is_file:
        render_warning(ctx.console, f"{node.path} is a folder")
        return ""
    render_file_view(ctx.console, node)
    return ""


def _create(ctx: CommandContext, args: list[str], usage: str, folder: bool) -> vfs.FileNode | None:
    path = _require_arg(ctx, args, usage)
    if path is None:
        return None
    target = ctx.workspace.normalize(path)
    parent, name = vfs.parent_path(target), vfs.basename(target)
    if folder:
        node = ctx.workspace.add_folder(parent, name)
    else:
        node = ctx.workspace.add_file(parent, name)
    if node is None:
        render_warning(ctx.console, f"Cannot create {target}: parent folder missing or name already taken")
        return None
    render_success(ctx.console, f"Created {node.path}")
    return node


def _cmd_new(ctx: CommandContext, args: list[str]) -> str:
    node = _create(ctx, args, "/new <path>", folder=False)
    if node is not None:
        _open_in_tab(ctx, node)
    return ""


def _cmd_mkdir(ctx: CommandContext, args: list[str]) -> str:
    _create(ctx, args, "/mkdir <path>", folder=True)
    return ""


def _cmd_rm(ctx: CommandContext, args: list[str]) -> str:
    path = _require_arg(ctx, args, "/rm <path>")
    if path is None:
        return ""
    node = _resolve_node(ctx, path)
    if node is None:
        return ""
    if node.path == ctx.workspace.root:
        render_warning(ctx.console, "Refusing to delete the project root")
        return ""
    removed = ctx.workspace.delete(node.id)
    _sync_active_from_tabs(ctx)
    render_success(ctx.console, f"Deleted {node.path} ({len(removed)} item{'s' if len(removed) != 1 else ''})")
    return ""


def _cmd_mv(ctx: CommandContext, args: list[str]) -> str:
    if len(args) < 2:
        render_warning(ctx.console, "Usage: /mv <path> <new-name>")
        return ""
    node = _resolve_node(ctx, args[0])
    if node is None:
        return ""
    new_name = args[1]
    if not ctx.workspace.rename(node.id, new_name):
        render_warning(ctx.console, f"Cannot rename {node.path} to {new_name!r}: invalid or taken name")
        return ""
    ctx.tabs.rename(node.id, new_name)
    render_success(ctx.console, f"Renamed {node.path} → {ctx.workspace.get(node.id).path}")
    return ""


def _cmd_toggle(ctx: CommandContext, args: list[str]) -> str:
    path = _require_arg(ctx, args, "/toggle <path>")
    if path is None:
        return ""
    node = _resolve_node(ctx, path)
    if node is None:
        return ""
    if not ctx.workspace.toggle_expand(node.id):
        render_warning(ctx.console, f"{node.path} is not a folder")
        return ""
    render_file_tree(ctx.console, ctx.workspace.tree, ctx.workspace.active_file_id)
    return ""


def _cmd_tabs(ctx: CommandContext, args: list[str]) -> str:
    render_tab_bar(ctx.console, ctx.tabs)
    return ""


def _cmd_close(ctx: CommandContext, args: list[str]) -> str:
    if args:
        node = _resolve_node(ctx, args[0])
        if node is None:
            return ""
        tab_id = node.id
    else:
        tab_id = ctx.tabs.active_id
    if tab_id is None or not ctx.tabs.close(tab_id):
        render_warning(ctx.console, "No such open tab")
        return ""
    _sync_active_from_tabs(ctx)
    render_tab_bar(ctx.console, ctx.tabs)
    return ""


def _cmd_model(ctx: CommandContext, args: list[str]) -> str:
    if not args:
        render_models(ctx.console, MODELS, ctx.agent.model)
        return ""
    model_id = args[0]
    if not ctx.agent.set_model(model_id):
        render_warning(ctx.console, f"Unknown model: {model_id}. Use /model to list models.")
        return ""
    ctx.config.set_active_model(model_id)
    render_success(ctx.console, f"Switched → {model_id}")
    return ""


def _cmd_key(ctx: CommandContext, args: list[str]) -> str:
    key = _require_arg(ctx, args, "/key <api-key>")
    if key is None:
        return ""
    ctx.credentials.set_api_key(key)
    render_success(ctx.console, f"API key saved {ctx.credentials.masked_key()}")
    return ""


def _cmd_clear(ctx: CommandContext, args: list[str]) -> str:
    ctx.agent.clear()
    render_success(ctx.console, "Conversation cleared")
    return ""


def _cmd_save(ctx: CommandContext, args: list[str]) -> str:
    name = args[0] if args else None
    metadata = {"model": ctx.agent.model, "active_file": ctx.workspace.active_file_id}
    filename = save_session(ctx.agent.conversation, ctx.workspace, name, metadata)
    render_success(ctx.console, f"Saved session: {filename}")
    return ""


def _cmd_load(ctx: CommandContext, args: list[str]) -> str:
    name = _require_arg(ctx, args, "/load <name>")
    if name is None:
        return ""
    data = load_session(name)
    if data is None:
        render_warning(ctx.console, f"Session not found: {name}")
        return ""
    try:
        conversation, tree = restore_session(data)
    except ValueError as e:
        render_warning(ctx.console, str(e))
        return ""

    apply_session(ctx, conversation, tree, data.get("metadata") or {})
    render_success(ctx.console, f"Loaded: {data.get('name')} ({len(conversation)} messages)")
    render_transcript(ctx.console, conversation.snapshot())
    return ""


def apply_session(ctx: CommandContext, conversation, tree, metadata: dict):
    """Replace transcript and tree, keeping the current system prompt."""
    messages = list(conversation.snapshot())
    messages[0] = ctx.agent.conversation.system_message
    ctx.agent.conversation.replace_all(messages)
    ctx.agent.run_state.consecutive_tool_calls = 0
    ctx.workspace.replace_tree(tree)
    stale = [t.id for t in ctx.tabs.tabs if ctx.workspace.get(t.id) is None]
    ctx.tabs.close_many(stale)
    active = metadata.get("active_file")
    if active and ctx.workspace.get(active) is not None:
        _open_in_tab(ctx, ctx.workspace.get(active))
    else:
        _sync_active_from_tabs(ctx)


def _cmd_sessions(ctx: CommandContext, args: list[str]) -> str:
    render_sessions(ctx.console, list_sessions(20))
    return ""


def _cmd_config(ctx: CommandContext, args: list[str]) -> str:
    if not args:
        show_config_panel(ctx.console, ctx.config)
        return ""
    key = args[0]
    if key not in CONFIG_FIELDS:
        render_warning(ctx.console, f"Unknown key: {key}. Keys: {', '.join(CONFIG_FIELDS)}")
        return ""
    if len(args) == 1:
        spec = CONFIG_FIELDS[key]
        ctx.console.print(f"  [bold]{key}[/bold] = {escape(str(ctx.config.get_config_value(key)))} "
                          f"[{DIM}]({spec.description})[/{DIM}]")
        return ""
    value = " ".join(args[1:])
    if value.lower() == "reset":
        ok, error = ctx.config.reset_config_value(key)
    else:
        ok, error = ctx.config.set_config_value(key, value)
    if not ok:
        render_warning(ctx.console, f"{key}: {error}")
        return ""
    _apply_config_to_agent(ctx)
    render_success(ctx.console, f"{key} = {ctx.config.get_config_value(key)}")
    return ""


def _apply_config_to_agent(ctx: CommandContext):
    agent, config = ctx.agent, ctx.config
    agent.run_state.max_tool_calls = config.max_tool_calls
    agent.temperature = config.temperature
    agent.duplicate_window = config.duplicate_window
    agent.render_tool_results = config.render_tool_results
    agent.llm.api_base = config.api_base
    if agent.model != config.active_model:
        agent.set_model(config.active_model)


def _cmd_stats(ctx: CommandContext, args: list[str]) -> str:
    stats = ctx.agent.get_stats()
    files = sum(1 for n in vfs.iter_nodes(ctx.workspace.tree) if n.is_file)
    table = Table(show_header=False, border_style=BORDER, padding=(0, 2), box=None)
    table.add_column("Key", style=f"bold {ACCENT}")
    table.add_column("Value", style=TEXT)
    for key, value in stats.items():
        table.add_row(key.replace("_", " "), str(value))
    table.add_row("files", str(files))
    table.add_row("open tabs", str(len(ctx.tabs)))
    ctx.console.print(table)
    return ""


COMMAND_HANDLERS: dict[str, CommandHandler] = {
    "/quit": _cmd_quit,
    "/help": _cmd_help,
    "/tree": _cmd_tree,
    "/open": _cmd_open,
    "/cat": _cmd_cat,
    "/new": _cmd_new,
    "/mkdir": _cmd_mkdir,
    "/rm": _cmd_rm,
    "/mv": _cmd_mv,
    "/toggle": _cmd_toggle,
    "/tabs": _cmd_tabs,
    "/close": _cmd_close,
    "/model": _cmd_model,
    "/key": _cmd_key,
    "/clear": _cmd_clear,
    "/save": _cmd_save,
    "/load": _cmd_load,
    "/sessions": _cmd_sessions,
    "/config": _cmd_config,
    "/stats": _cmd_stats,
}
