"""pomodoro-timer: a work / break countdown timer."""

__version__ = "0.1.0"
