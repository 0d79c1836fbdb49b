"""CLI entry point for pomodoro-timer.

Uses Click to expose the ``pomodoro`` command group with subcommands
that delegate to the Session orchestrator.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, TypeVar

import click

import pomodoro_timer
from pomodoro_timer.core.session import DEFAULT_CONFIG_DIR, Session, format_time, open_store
from pomodoro_timer.core.storage import StorageError
from pomodoro_timer.core.ticker import IntervalTicker
from pomodoro_timer.core.timer import InvalidStateError, SessionState, TimerMode

T = TypeVar("T")

_MODE_CHOICES = [mode.value for mode in TimerMode]
_WATCH_HINT = "The countdown only advances while `pomodoro watch` is open."


def setup_logging(verbose: bool) -> None:
    """Configure logging for the command line."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting timer and storage errors to a CLI error.

    The message is printed to stderr and the process exits with code 1.
    """
    try:
        return action()
    except (InvalidStateError, StorageError) as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _ring_bell() -> None:
    click.echo("\a", nl=False)


def _open_session(ctx: click.Context) -> Session:
    config_dir: Path = ctx.obj["config_dir"]
    return _run(lambda: Session(open_store(config_dir), chime=_ring_bell))


def _render(state: SessionState) -> None:
    line = f"{state.mode.label} {format_time(state.remaining_seconds)}"
    line += f"  [sessions: {state.completed_work_sessions}]"
    click.echo(f"\r{line}", nl=False)


def _watch(session: Session) -> None:
    """Run the countdown in the foreground; Ctrl-C pauses it."""
    _render(session.snapshot())
    try:
        _run(lambda: session.run(IntervalTicker(), on_update=_render))
    except KeyboardInterrupt:
        click.echo()
        click.echo(_run(session.pause))
        return
    click.echo()


@click.group()
@click.version_option(version=pomodoro_timer.__version__, prog_name="pomodoro")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_DIR,
    envvar="POMODORO_CONFIG_DIR",
    show_default=True,
    help="Directory holding the persisted timer state.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log state transitions to stderr.")
@click.pass_context
def cli(ctx: click.Context, config_dir: Path, verbose: bool) -> None:
    """pomodoro: a work / break countdown timer for the terminal."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the current interval and completed sessions."""
    session = _open_session(ctx)
    click.echo(session.status())
    if session.snapshot().running:
        click.echo(_WATCH_HINT)


@cli.command()
@click.option(
    "--watch/--no-watch",
    default=True,
    help="Keep counting down in the foreground until interrupted.",
)
@click.pass_context
def start(ctx: click.Context, watch: bool) -> None:
    """Start (or resume) the current interval."""
    session = _open_session(ctx)
    click.echo(_run(session.start))
    if watch:
        _watch(session)
    elif session.snapshot().running:
        click.echo(_WATCH_HINT)


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Follow a running countdown in the foreground."""
    session = _open_session(ctx)
    if not session.snapshot().running:
        click.echo(session.status())
        return
    _watch(session)


@cli.command()
@click.pass_context
def pause(ctx: click.Context) -> None:
    """Pause the current interval."""
    session = _open_session(ctx)
    click.echo(_run(session.pause))


@cli.command()
@click.pass_context
def toggle(ctx: click.Context) -> None:
    """Pause if running, otherwise start."""
    session = _open_session(ctx)
    click.echo(_run(session.toggle))


@cli.command()
@click.pass_context
def reset(ctx: click.Context) -> None:
    """Stop and refill the current interval."""
    session = _open_session(ctx)
    click.echo(_run(session.reset))


@cli.command()
@click.argument("mode", type=click.Choice(_MODE_CHOICES))
@click.pass_context
def switch(ctx: click.Context, mode: str) -> None:
    """Switch to MODE, keeping the time left in the current one."""
    session = _open_session(ctx)
    click.echo(_run(lambda: session.switch(mode)))


@cli.command(name="reset-all")
@click.pass_context
def reset_all(ctx: click.Context) -> None:
    """Forget every interval and completed session."""
    session = _open_session(ctx)
    click.echo(_run(session.reset_all))
