"""Tests for the blocking interval ticker."""

import threading

import pytest

from pomodoro_timer.core.ticker import IntervalTicker


class TestIntervalTicker:
    """IntervalTicker calls back once per period until stopped."""

    def test_stop_from_callback_ends_loop(self) -> None:
        ticker = IntervalTicker(period=0)
        calls = []

        def _on_tick() -> None:
            calls.append(1)
            if len(calls) == 3:
                ticker.stop()

        ticker.start(_on_tick)
        assert len(calls) == 3

    def test_exception_stops_loop_and_propagates(self) -> None:
        ticker = IntervalTicker(period=0)

        def _on_tick() -> None:
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            ticker.start(_on_tick)

    def test_ticker_can_be_restarted(self) -> None:
        ticker = IntervalTicker(period=0)
        calls = []

        def _on_tick() -> None:
            calls.append(1)
            ticker.stop()

        ticker.start(_on_tick)
        ticker.start(_on_tick)
        assert len(calls) == 2

    def test_stop_from_another_thread(self) -> None:
        ticker = IntervalTicker(period=0.01)
        ticked = threading.Event()

        def _on_tick() -> None:
            ticked.set()

        stopper = threading.Thread(target=lambda: (ticked.wait(5), ticker.stop()))
        stopper.start()
        ticker.start(_on_tick)
        stopper.join(5)
        assert ticked.is_set()

    def test_default_period_is_one_second(self) -> None:
        assert IntervalTicker().period == 1.0

    def test_negative_period_rejected(self) -> None:
        with pytest.raises(ValueError):
            IntervalTicker(period=-1)
