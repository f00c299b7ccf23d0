import os
import signal
from contextlib import contextmanager
from smallsh.job_control import describe_status

# Interrupt, child termination, foreground-only toggle
ROUTED_SIGNALS = (signal.SIGINT, signal.SIGCHLD, signal.SIGTSTP)

ENTER_FOREGROUND_ONLY = "Entering foreground-only mode (& is now ignored)"
EXIT_FOREGROUND_ONLY = "Exiting foreground-only mode"


@contextmanager
def blocked_signals(signals=ROUTED_SIGNALS):
    """Block signals for the duration of the with-block, then restore the old mask."""
    old_mask = signal.pthread_sigmask(signal.SIG_BLOCK, signals)
    try:
        yield old_mask
    finally:
        signal.pthread_sigmask(signal.SIG_SETMASK, old_mask)


def write_stdout(text):
    """Unbuffered write to fd 1, safe to call from a signal handler."""
    data = text.encode()
    while data:
        try:
            written = os.write(1, data)
        except BlockingIOError:
            continue
        data = data[written:]


class SignalRouter:
    """
    Routes SIGINT to the foreground child, SIGCHLD to the job table
    reaper and SIGTSTP to the foreground-only toggle.

    Each handler runs with all routed signals blocked, so the three never
    interleave. A blocking call interrupted by one of them (the foreground
    waitpid, input()) is retried by Python once the handler returns.
    """

    def __init__(self, state, write=None):
        self.state = state
        self.write = write or write_stdout
        self._previous = {}

    def install(self):
        handlers = {
            signal.SIGINT: self.handle_interrupt,
            signal.SIGCHLD: self.handle_child,
            signal.SIGTSTP: self.handle_toggle,
        }
        for signum, handler in handlers.items():
            self._previous[signum] = signal.signal(signum, handler)

    def restore(self):
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def handle_interrupt(self, signum, frame):
        """Kill the foreground child, if any. Background jobs are left alone."""
        with blocked_signals():
            pid = self.state.foreground_pid
            if pid is None:
                self.write("\n")
                return
            try:
                os.kill(pid, signal.SIGKILL)
            except ProcessLookupError:
                return
            self.state.interrupted_pid = pid
            self.write(f"terminated by signal {signum}\n")

    def handle_child(self, signum, frame):
        """Reap finished background jobs and report each one."""
        with blocked_signals():
            spare = ()
            if self.state.foreground_pid is not None:
                spare = (self.state.foreground_pid,)
            for pid, raw_status in self.state.jobs.reap(spare=spare):
                self.write(f"background pid {pid} is done: {describe_status(raw_status)}\n")

    def handle_toggle(self, signum, frame):
        """Flip foreground-only mode."""
        with blocked_signals():
            if self.state.toggle_foreground_only():
                self.write(f"{ENTER_FOREGROUND_ONLY}\n")
            else:
                self.write(f"{EXIT_FOREGROUND_ONLY}\n")
