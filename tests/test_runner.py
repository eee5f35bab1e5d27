import threading

import pytest

from locshare.client.application.runner import Runner, backoff_delay


def _runner(fanout=lambda: None, retrieval=lambda: None, **kwargs) -> Runner:
    params = {
        "fanout_interval": 0.01,
        "retrieval_interval": 0.01,
        "max_backoff": 0.05,
    }
    params.update(kwargs)
    return Runner(fanout, retrieval, **params)


@pytest.mark.parametrize(
    ("failures", "expected"),
    [(0, 5), (1, 10), (2, 20), (3, 40), (6, 300), (50, 300)],
)
def test_backoff_delay(failures: int, expected: float) -> None:
    assert backoff_delay(5, failures, 300) == expected


def test_backoff_never_below_interval() -> None:
    assert backoff_delay(30, 2, 10) == 30  # noqa: PLR2004


def test_fanout_is_single_flight() -> None:
    entered = threading.Event()
    release = threading.Event()
    calls = []

    def slow_fanout() -> None:
        calls.append(1)
        entered.set()
        release.wait(5)

    runner = _runner(fanout=slow_fanout)
    first = threading.Thread(target=runner.fanout_tick)
    first.start()
    assert entered.wait(5)

    assert runner.fanout_tick() is False
    release.set()
    first.join(5)

    assert calls == [1]
    assert runner.fanout_tick() is True
    assert calls == [1, 1]


def test_fanout_tick_releases_after_error() -> None:
    def boom() -> None:
        raise RuntimeError("boom")

    runner = _runner(fanout=boom)
    with pytest.raises(RuntimeError):
        runner.fanout_tick()
    with pytest.raises(RuntimeError):
        runner.fanout_tick()


def test_loop_survives_errors_and_reports_them() -> None:
    errors: list[Exception] = []
    ticks = []
    done = threading.Event()

    def flaky() -> None:
        ticks.append(1)
        if len(ticks) >= 3:  # noqa: PLR2004
            done.set()
        raise ValueError("flaky")

    runner = _runner(retrieval=flaky, on_error_callback=errors.append)
    runner.start_in_thread()
    try:
        assert done.wait(5)
    finally:
        runner.stop_thread(wait=True, timeout=5)

    assert len(errors) >= 3  # noqa: PLR2004
    assert all(isinstance(e, ValueError) for e in errors)
    assert not runner.is_running


def test_stop_lets_running_cycle_finish() -> None:
    entered = threading.Event()
    finished = threading.Event()

    def slow_fanout() -> None:
        entered.set()
        threading.Event().wait(0.1)
        finished.set()

    runner = _runner(fanout=slow_fanout, fanout_interval=10, retrieval_interval=10)
    runner.start_in_thread()
    assert entered.wait(5)
    runner.stop_thread(wait=True, timeout=5)

    assert finished.is_set()
    assert not runner.is_running


def test_start_twice_is_a_no_op() -> None:
    runner = _runner(fanout_interval=10, retrieval_interval=10)
    runner.start_in_thread()
    threads = list(runner._threads)
    runner.start_in_thread()
    assert runner._threads == threads
    runner.stop_thread(wait=True, timeout=5)


def test_raising_error_callback_does_not_kill_loop() -> None:
    ticks = []
    done = threading.Event()

    def flaky() -> None:
        ticks.append(1)
        if len(ticks) >= 3:  # noqa: PLR2004
            done.set()
        raise ValueError("flaky")

    def bad_callback(error: Exception) -> None:
        raise RuntimeError("callback broke")

    runner = _runner(retrieval=flaky, on_error_callback=bad_callback)
    runner.start_in_thread()
    try:
        assert done.wait(5)
    finally:
        runner.stop_thread(wait=True, timeout=5)

    assert len(ticks) >= 3  # noqa: PLR2004
