"""
codeforge-agent v1.0.0 — AI-first code editor for your terminal.

Command: forge run
"""

import os
import sys

import click
from rich.console import Console

from . import __version__
from .agent import Agent
from .command_router import apply_session, build_context, handle_command, show_config_panel
from .config import CONFIG_DIR, HISTORY_FILE, MODELS, Config, find_model
from .credentials import CredentialStore
from .errors import AgentError
from .llm import LLMAdapter
from .logger import get_logger, setup_logger
from .rendering import render_error, render_models, render_warning
from .session import AUTOSAVE_NAME, load_session, restore_session, save_session
from .tools import ToolRegistry
from .ui import build_banner
from .vfs import iter_nodes
from .workspace import Workspace

console = Console()
_log = get_logger(__name__)


def _pick_model(cli_model, config: Config, credentials: CredentialStore) -> str:
    """CLI flag, then the last model chosen in the editor, then config."""
    if cli_model:
        if find_model(cli_model) is None:
            known = ", ".join(m.id for m in MODELS)
            raise click.BadParameter(f"unknown model {cli_model!r} (choose from {known})",
                                     param_hint="--model")
        return cli_model
    return credentials.current_model_id or config.active_model


def _build_agent(config: Config, credentials: CredentialStore, workspace: Workspace,
                 model: str, quiet: bool = False) -> Agent:
    llm = LLMAdapter(api_base=config.api_base)
    tools = ToolRegistry(workspace)
    return Agent(
        llm=llm,
        tools=tools,
        credentials=credentials,
        model=model,
        max_tool_calls=config.max_tool_calls,
        temperature=config.temperature,
        duplicate_window=config.duplicate_window,
        console=console,
        quiet=quiet,
        render_tool_results=config.render_tool_results,
    )


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx):
    """codeforge-agent — AI-first code editor for your terminal."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@click.option("--model", "-m", default=None, help="Model id")
@click.option("--api-key", "-k", default=None, help="API key for this session only")
@click.option("--api-base", "-b", default=None, help="API base override")
@click.option("--project-dir", "-d", default=".", help="Directory holding .forge.conf.yml")
@click.option("--resume", "-r", "resume", default=None, is_flag=False, flag_value=AUTOSAVE_NAME,
              help="Resume a saved session (default: the autosave)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def run(model, api_key, api_base, project_dir, resume, verbose):
    """Start an interactive session."""
    console.print(build_banner(__version__))
    os.environ.setdefault("PROMPT_TOOLKIT_NO_CPR", "1")
    config = Config.load(project_dir)
    if verbose:
        config.verbose = True
    if api_base:
        config.api_base = api_base
    setup_logger(verbose=config.verbose)

    credentials = CredentialStore().load()
    if api_key:
        credentials.api_key = api_key
        credentials.is_default_key = False

    workspace = Workspace()
    agent = _build_agent(config, credentials, workspace, _pick_model(model, config, credentials))
    ctx = build_context(console, agent, config, workspace, credentials)

    if resume:
        data = load_session(resume)
        if data is None:
            render_warning(console, f"Session not found: {resume}")
        else:
            try:
                conversation, tree = restore_session(data)
            except ValueError as e:
                render_warning(console, str(e))
            else:
                apply_session(ctx, conversation, tree, data.get("metadata") or {})
                console.print(f"[dim]Resumed {data.get('name')} ({len(conversation)} messages)[/dim]")

    from .ui import PTK_STYLE, SlashCommandCompleter, make_prompt_html, render_startup

    render_startup(console, config, credentials, workspace)
    if not credentials.has_api_key():
        render_warning(console, "No API key configured. Use /key <api-key> before chatting.")

    from prompt_toolkit import PromptSession
    from prompt_toolkit.history import FileHistory
    from prompt_toolkit.key_binding import KeyBindings
    from prompt_toolkit.shortcuts import CompleteStyle

    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    def _workspace_paths():
        return [node.path for node in iter_nodes(workspace.tree)]

    slash_completer = SlashCommandCompleter(path_source=_workspace_paths)
    session = PromptSession(
        history=FileHistory(str(HISTORY_FILE)),
        multiline=False,
        completer=slash_completer,
        complete_while_typing=True,
        style=PTK_STYLE,
        complete_style=CompleteStyle.COLUMN,
    )

    repl_kb = KeyBindings()

    @repl_kb.add("escape", "enter")
    def _newline(event):
        event.current_buffer.insert_text("\n")

    @repl_kb.add("/")
    def _slash_menu(event):
        buffer = event.current_buffer
        buffer.insert_text("/")
        if buffer.document.text == "/":
            buffer.start_completion(select_first=True)

    pending_ctrl_d_exit = False

    while True:
        try:
            active = ctx.tabs.get(ctx.tabs.active_id)
            prompt_html = make_prompt_html(active.name if active else None)
            user_input = session.prompt(prompt_html, key_bindings=repl_kb).strip()
            pending_ctrl_d_exit = False
        except EOFError:
            if pending_ctrl_d_exit:
                console.print("\n[dim]Goodbye![/dim]")
                break
            pending_ctrl_d_exit = True
            console.print("\n[dim]Press Ctrl-D again to exit.[/dim]")
            continue
        except KeyboardInterrupt:
            console.print("\n[dim]Goodbye![/dim]")
            break

        if not user_input:
            continue

        if user_input.startswith("/"):
            if handle_command(user_input, ctx) == "quit":
                break
            continue

        try:
            agent.send_message(user_input)
        except AgentError as error:
            render_warning(console, str(error))
        except KeyboardInterrupt:
            console.print("\n[yellow]  Interrupted.[/yellow]")
        except Exception as error:
            _log.exception("unexpected failure during turn")
            render_error(console, str(error))
            if config.verbose:
                import traceback

                console.print(f"[dim]{traceback.format_exc()}[/dim]")

    if config.persist_session and len(agent.conversation) > 1:
        filename = save_session(agent.conversation, workspace, AUTOSAVE_NAME,
                                {"model": agent.model, "active_file": workspace.active_file_id})
        console.print(f"[dim]Session saved to {filename} (resume with forge run -r)[/dim]")


@cli.command()
@click.argument("message", nargs=-1, required=True)
@click.option("--model", "-m", default=None)
@click.option("--project-dir", "-d", default=".")
@click.option("--verbose", "-v", is_flag=True)
def ask(message, model, project_dir, verbose):
    """Run a single query against the starter project."""
    config = Config.load(project_dir)
    setup_logger(verbose=verbose or config.verbose)
    credentials = CredentialStore().load()
    workspace = Workspace()
    agent = _build_agent(config, credentials, workspace, _pick_model(model, config, credentials))
    try:
        agent.send_message(" ".join(message))
    except AgentError as error:
        render_warning(console, str(error))
        sys.exit(1)


@cli.command("config")
@click.option("--project-dir", "-d", default=".")
def config_cmd(project_dir):
    """Show configuration."""
    cfg = Config.load(project_dir)
    show_config_panel(console, cfg)


@cli.command()
def models():
    """List available models."""
    credentials = CredentialStore().load()
    cfg = Config.load()
    render_models(console, MODELS, credentials.current_model_id or cfg.active_model)


if __name__ == "__main__":
    cli()
