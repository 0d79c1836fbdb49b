"""Timer core — a pure Pomodoro state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class TimerMode(Enum):
    """The interval kinds the timer cycles through."""

    WORK = "work"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class InvalidStateError(Exception):
    """Raised when an operation is invoked outside its precondition."""


DEFAULT_DURATIONS: Mapping[TimerMode, int] = {
    TimerMode.WORK: 25 * 60,
    TimerMode.SHORT_BREAK: 5 * 60,
    TimerMode.LONG_BREAK: 15 * 60,
}

# A long break follows every work session whose new count satisfies
# ``count % _LONG_BREAK_CYCLE == _LONG_BREAK_REMAINDER`` (the 3rd, 7th, 11th...).
_LONG_BREAK_CYCLE = 4
_LONG_BREAK_REMAINDER = 3


def default_duration(mode: TimerMode) -> int:
    """Return the configured duration of *mode* in seconds."""
    return DEFAULT_DURATIONS[mode]


def coerce_mode(value: object) -> TimerMode | None:
    """Return *value* as a :class:`TimerMode`, or ``None`` if it names no mode."""
    if isinstance(value, TimerMode):
        return value
    try:
        return TimerMode(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of the timer, suitable for rendering and persistence."""

    mode: TimerMode = TimerMode.WORK
    remaining_seconds: int = DEFAULT_DURATIONS[TimerMode.WORK]
    running: bool = False
    completed_work_sessions: int = 0
    saved_durations: Mapping[TimerMode, int] = field(
        default_factory=lambda: dict(DEFAULT_DURATIONS)
    )

    def duration_for(self, mode: TimerMode) -> int:
        """Saved duration of *mode*, falling back to its default."""
        return self.saved_durations.get(mode) or default_duration(mode)


class PomodoroTimer:
    """A pure state machine for the work / short break / long break cycle.

    Counts whole seconds via :meth:`tick`; contains no I/O, no clock and no
    persistence.  Callers snapshot it with :meth:`snapshot` after mutating.
    """

    def __init__(self, state: SessionState | None = None) -> None:
        state = state if state is not None else SessionState()
        self._mode: TimerMode = state.mode
        self._remaining_seconds: int = state.remaining_seconds
        self._running: bool = state.running
        self._completed_work_sessions: int = state.completed_work_sessions
        self._saved_durations: dict[TimerMode, int] = dict(state.saved_durations)

    # -- read-only accessors -------------------------------------------------

    @property
    def mode(self) -> TimerMode:
        return self._mode

    @property
    def remaining_seconds(self) -> int:
        return self._remaining_seconds

    @property
    def running(self) -> bool:
        return self._running

    @property
    def completed_work_sessions(self) -> int:
        return self._completed_work_sessions

    def snapshot(self) -> SessionState:
        """Return the current state as an immutable :class:`SessionState`."""
        return SessionState(
            mode=self._mode,
            remaining_seconds=self._remaining_seconds,
            running=self._running,
            completed_work_sessions=self._completed_work_sessions,
            saved_durations=dict(self._saved_durations),
        )

    def duration_for(self, mode: TimerMode) -> int:
        return self._saved_durations.get(mode) or default_duration(mode)

    # -- transitions ---------------------------------------------------------

    def tick(self) -> None:
        """Count down one second.

        Valid only while running with time left.
        """
        if not self._running:
            raise InvalidStateError("tick() is not valid while paused")
        if self._remaining_seconds <= 0:
            raise InvalidStateError("tick() is not valid with no time remaining")
        self._remaining_seconds -= 1

    def complete_interval(self) -> TimerMode:
        """Advance to the next interval once the countdown has reached zero.

        Returns the mode that was entered.  The next interval starts running
        immediately.
        """
        if self._remaining_seconds != 0:
            raise InvalidStateError(
                f"complete_interval() is not valid with {self._remaining_seconds}s remaining"
            )

        finished = self._mode
        if finished == TimerMode.WORK:
            self._completed_work_sessions += 1
            if self._completed_work_sessions % _LONG_BREAK_CYCLE == _LONG_BREAK_REMAINDER:
                next_mode = TimerMode.LONG_BREAK
            else:
                next_mode = TimerMode.SHORT_BREAK
        else:
            next_mode = TimerMode.WORK

        # Automatic transitions always enter a full interval; progress saved by
        # switch_mode() is dropped for both the finished and the next mode.
        self._saved_durations[finished] = default_duration(finished)
        self._saved_durations[next_mode] = default_duration(next_mode)

        self._mode = next_mode
        self._remaining_seconds = default_duration(next_mode)
        self._running = True
        return next_mode

    def start(self) -> bool:
        """Resume the countdown.  Returns ``False`` if there is no time left."""
        if self._remaining_seconds == 0:
            return False
        self._running = True
        return True

    def pause(self) -> None:
        self._running = False

    def toggle(self) -> bool:
        """Pause if running, otherwise start.  Returns the new running flag."""
        if self._running:
            self.pause()
        else:
            self.start()
        return self._running

    def reset_interval(self) -> None:
        """Stop and refill the current interval; the mode and count are kept."""
        self._running = False
        self._remaining_seconds = self.duration_for(self._mode)

    def switch_mode(self, target: TimerMode | str) -> bool:
        """Switch to *target*, remembering the time left in the current mode.

        Returns ``False`` without changing anything when *target* is not a
        known mode or is already active.
        """
        mode = coerce_mode(target)
        if mode is None or mode == self._mode:
            return False

        self._saved_durations[self._mode] = self._remaining_seconds
        self._mode = mode
        self._running = False
        self._remaining_seconds = self.duration_for(mode)
        return True

    def reset_all(self) -> None:
        """Return every field to its default."""
        self._mode = TimerMode.WORK
        self._remaining_seconds = default_duration(TimerMode.WORK)
        self._running = False
        self._completed_work_sessions = 0
        self._saved_durations = dict(DEFAULT_DURATIONS)
