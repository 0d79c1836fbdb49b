"""Session — drives the Pomodoro timer and mirrors it to a key-value store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from pomodoro_timer.core.storage import (
    JsonFileStore,
    PersistenceAdapter,
    clear_state,
    load_initial_state,
    save_state,
)
from pomodoro_timer.core.ticker import Ticker
from pomodoro_timer.core.timer import PomodoroTimer, SessionState, TimerMode, coerce_mode

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "pomodoro"
STATE_FILE = "state.json"


def format_time(seconds: int) -> str:
    """Format *seconds* as ``MM:SS``."""
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def open_store(config_dir: Path | None = None) -> JsonFileStore:
    """Return the JSON state store inside *config_dir*."""
    directory = config_dir if config_dir is not None else DEFAULT_CONFIG_DIR
    return JsonFileStore(directory / STATE_FILE)


class Session:
    """Orchestrates a Pomodoro session on top of a persistence adapter.

    Every mutation is followed by a full snapshot write so that a restarted
    process resumes from the last observed state.  Intent methods return the
    message to show the user.
    """

    def __init__(
        self,
        store: PersistenceAdapter,
        *,
        chime: Optional[Callable[[], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._chime = chime
        self._logger = logger or logging.getLogger("pomodoro_timer.session")
        self._timer = PomodoroTimer(load_initial_state(store))
        if self._timer.remaining_seconds == 0:
            # The previous process stopped between reaching zero and advancing.
            self._complete()
            self._save()

    @property
    def timer(self) -> PomodoroTimer:
        return self._timer

    def snapshot(self) -> SessionState:
        return self._timer.snapshot()

    # -- intents -------------------------------------------------------------

    def status(self) -> str:
        """Return the current interval and the completed-session count."""
        state = self._timer.snapshot()
        line = f"{state.mode.label} {format_time(state.remaining_seconds)} remaining"
        if not state.running:
            line += " (paused)"
        return f"{line}\nCompleted work sessions: {state.completed_work_sessions}"

    def start(self) -> str:
        """Start (or resume) the current interval."""
        self._timer.start()
        self._save()
        self._logger.info(
            "Timer started: mode=%s remaining=%ss",
            self._timer.mode.value,
            self._timer.remaining_seconds,
        )
        return f"{self._timer.mode.label} started: {self._remaining()} remaining"

    def pause(self) -> str:
        """Pause the current interval, keeping its remaining time."""
        self._timer.pause()
        self._save()
        self._logger.info(
            "Timer paused: mode=%s remaining=%ss",
            self._timer.mode.value,
            self._timer.remaining_seconds,
        )
        return f"{self._timer.mode.label} paused at {self._remaining()} remaining"

    def toggle(self) -> str:
        """Pause if running, otherwise start."""
        if self._timer.running:
            return self.pause()
        return self.start()

    def reset(self) -> str:
        """Stop and refill the current interval."""
        self._timer.reset_interval()
        self._save()
        self._logger.info("Interval reset: mode=%s", self._timer.mode.value)
        return f"{self._timer.mode.label} reset to {self._remaining()}"

    def switch(self, target: TimerMode | str) -> str:
        """Switch to *target*, remembering the time left in the current mode."""
        mode = coerce_mode(target)
        if mode is None:
            self._logger.warning("Ignoring switch to unknown mode %r", target)
            return f"Unknown mode: {target}"
        if not self._timer.switch_mode(mode):
            return f"Already in {mode.label} mode"
        self._save()
        self._logger.info(
            "Switched mode: mode=%s remaining=%ss",
            mode.value,
            self._timer.remaining_seconds,
        )
        return f"Switched to {mode.label}: {self._remaining()} remaining"

    def reset_all(self) -> str:
        """Return to a fresh session and erase the persisted state."""
        self._timer.reset_all()
        clear_state(self._store)
        self._logger.info("All sessions reset")
        return "All sessions reset"

    # -- driving loop --------------------------------------------------------

    def advance(self) -> bool:
        """Process one elapsed second.  Returns ``True`` if an interval ended."""
        completed = False
        if self._timer.remaining_seconds == 0:
            self._complete()
            completed = True
        elif self._timer.running:
            self._timer.tick()
            if self._timer.remaining_seconds == 0:
                self._complete()
                completed = True
        self._save()
        return completed

    def run(
        self,
        ticker: Ticker,
        on_update: Optional[Callable[[SessionState], None]] = None,
    ) -> None:
        """Drive :meth:`advance` from *ticker* until the timer stops running."""
        if not self._timer.running:
            return

        def _on_tick() -> None:
            self.advance()
            if on_update is not None:
                on_update(self._timer.snapshot())
            if not self._timer.running:
                ticker.stop()

        ticker.start(_on_tick)

    # -- private helpers -----------------------------------------------------

    def _complete(self) -> None:
        finished = self._timer.mode
        next_mode = self._timer.complete_interval()
        self._logger.info(
            "Interval completed: finished=%s next=%s completed_work_sessions=%s",
            finished.value,
            next_mode.value,
            self._timer.completed_work_sessions,
        )
        self._play_chime()

    def _play_chime(self) -> None:
        if self._chime is None:
            return
        try:
            self._chime()
        except Exception as exc:
            self._logger.warning("Chime playback failed: %s", exc)

    def _remaining(self) -> str:
        return format_time(self._timer.remaining_seconds)

    def _save(self) -> None:
        save_state(self._store, self._timer.snapshot())
