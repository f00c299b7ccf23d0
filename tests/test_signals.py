import os
import signal
import threading
import time
import pytest

from smallsh.command import Command
from smallsh.executor import execute_command
from smallsh.signals import (
    SignalRouter,
    blocked_signals,
    ENTER_FOREGROUND_ONLY,
    EXIT_FOREGROUND_ONLY,
)
from smallsh.state import ShellState


@pytest.fixture
def state():
    shell_state = ShellState()
    yield shell_state
    shell_state.jobs.kill_all()


@pytest.fixture
def messages():
    return []


@pytest.fixture
def router(state, messages):
    signal_router = SignalRouter(state, write=messages.append)
    signal_router.install()
    yield signal_router
    signal_router.restore()


def interrupt_main_thread_after(delay):
    main_ident = threading.main_thread().ident
    timer = threading.Timer(delay, signal.pthread_kill, args=(main_ident, signal.SIGINT))
    timer.start()
    return timer


def test_install_and_restore(state):
    before = signal.getsignal(signal.SIGINT)
    signal_router = SignalRouter(state)
    signal_router.install()
    try:
        assert signal.getsignal(signal.SIGINT) == signal_router.handle_interrupt
        assert signal.getsignal(signal.SIGCHLD) == signal_router.handle_child
        assert signal.getsignal(signal.SIGTSTP) == signal_router.handle_toggle
    finally:
        signal_router.restore()
    assert signal.getsignal(signal.SIGINT) == before


def test_blocked_signals_restores_mask():
    before = signal.pthread_sigmask(signal.SIG_BLOCK, [])
    with blocked_signals():
        current = signal.pthread_sigmask(signal.SIG_BLOCK, [])
        assert signal.SIGINT in current
        assert signal.SIGCHLD in current
        assert signal.SIGTSTP in current
    assert signal.pthread_sigmask(signal.SIG_BLOCK, []) == before


class TestInterrupt:

    def test_kills_foreground_child(self, state, router, messages):
        timer = interrupt_main_thread_after(0.5)
        started = time.monotonic()
        try:
            status = execute_command(Command(["sleep", "30"]), state)
        finally:
            timer.cancel()

        assert time.monotonic() - started < 10
        assert status == -signal.SIGINT
        assert f"terminated by signal {int(signal.SIGINT)}\n" in messages
        assert state.foreground_pid is None

    def test_without_foreground_child(self, state, router, messages):
        router.handle_interrupt(signal.SIGINT, None)
        assert messages == ["\n"]
        assert state.interrupted_pid is None

    def test_background_jobs_untouched(self, state, router, messages):
        pid = os.posix_spawnp("sleep", ["sleep", "30"], os.environ)
        state.jobs.add(pid)

        router.handle_interrupt(signal.SIGINT, None)

        assert state.jobs.pids() == [pid]
        assert os.waitpid(pid, os.WNOHANG) == (0, 0)


class TestChildReaper:

    def test_reports_finished_background_job(self, state, router, messages):
        pid = os.posix_spawnp("sh", ["sh", "-c", "exit 4"], os.environ)
        state.jobs.add(pid)

        deadline = time.monotonic() + 5
        while len(state.jobs) and time.monotonic() < deadline:
            router.handle_child(signal.SIGCHLD, None)
            time.sleep(0.02)

        assert f"background pid {pid} is done: exit value 4\n" in messages
        assert len(state.jobs) == 0

    def test_reports_signal_termination(self, state, router, messages):
        pid = os.posix_spawnp("sleep", ["sleep", "30"], os.environ)
        state.jobs.add(pid)
        os.kill(pid, signal.SIGKILL)

        deadline = time.monotonic() + 5
        while len(state.jobs) and time.monotonic() < deadline:
            router.handle_child(signal.SIGCHLD, None)
            time.sleep(0.02)

        assert f"background pid {pid} is done: terminated by signal 9\n" in messages


class TestForegroundOnlyToggle:

    def test_toggle_messages(self, state, router, messages):
        router.handle_toggle(signal.SIGTSTP, None)
        assert state.foreground_only is True
        router.handle_toggle(signal.SIGTSTP, None)
        assert state.foreground_only is False
        assert messages == [f"{ENTER_FOREGROUND_ONLY}\n", f"{EXIT_FOREGROUND_ONLY}\n"]

    def test_delivered_signal_toggles_mode(self, state, router, messages):
        signal.raise_signal(signal.SIGTSTP)
        assert state.foreground_only is True
        assert messages == [f"{ENTER_FOREGROUND_ONLY}\n"]


def test_reaper_runs_during_foreground_wait(state, router, messages):
    execute_command(Command(["sh", "-c", "sleep 0.2; exit 4"], background=True), state)
    [pid] = state.jobs.pids()

    status = execute_command(Command(["sleep", "1"]), state)

    assert status == 0
    assert f"background pid {pid} is done: exit value 4\n" in messages
    assert len(state.jobs) == 0
    assert state.foreground_pid is None
