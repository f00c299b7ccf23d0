import os
import signal
import psutil
from smallsh.config import MAX_JOBS


class JobTableFull(RuntimeError):
    """Raised when a background job is added to a full job table."""


class Job:
    """A background process tracked until the reaper collects it."""

    def __init__(self, pid):
        self.pid = pid
        self.active = True


def describe_status(raw_status):
    """Format a raw wait status as 'exit value N' or 'terminated by signal N'"""
    if os.WIFSIGNALED(raw_status):
        return f"terminated by signal {os.WTERMSIG(raw_status)}"
    return f"exit value {os.WEXITSTATUS(raw_status)}"


def describe_exit_code(code):
    """Same as describe_status, for a returncode-style int (negative = signal)"""
    if code < 0:
        return f"terminated by signal {-code}"
    return f"exit value {code}"


def _ensure_gone(pid, spare=()):
    """Kill pid if it is still one of our children and nobody tracks it."""
    if pid in spare:
        return
    try:
        proc = psutil.Process(pid)
        if proc.ppid() == os.getpid():
            proc.kill()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        pass


class JobTable:
    """
    Fixed-capacity table of background jobs.

    Jobs live in index-addressed slots; a new job takes the first free
    slot. A slot is published with a single assignment and cleared with a
    single assignment, so a signal handler never sees half of an update.
    """

    def __init__(self, capacity=MAX_JOBS):
        self.capacity = capacity
        self._slots = [None] * capacity

    def __len__(self):
        return sum(1 for job in self._slots if job is not None)

    def __iter__(self):
        return (job for job in self._slots if job is not None)

    @property
    def full(self):
        return all(job is not None for job in self._slots)

    def pids(self):
        return [job.pid for job in self]

    def add(self, pid):
        """
        Register a background pid in the first free slot.
        Returns: slot index
        """
        for index, job in enumerate(self._slots):
            if job is None:
                self._slots[index] = Job(pid)
                return index
        raise JobTableFull(f"too many background jobs ({self.capacity})")

    def remove(self, index):
        """Clear a slot. Returns: the Job that was in it, marked inactive"""
        job = self._slots[index]
        if job is not None:
            job.active = False
            self._slots[index] = None
        return job

    def reap(self, spare=()):
        """
        Collect every finished background job without blocking.
        spare: pids that must never be killed (the foreground child).
        Returns: list of (pid, raw_status) for the jobs that finished
        """
        finished = []
        for index, job in enumerate(self._slots):
            if job is None:
                continue
            try:
                pid, raw_status = os.waitpid(job.pid, os.WNOHANG)
            except ChildProcessError:
                # Already collected elsewhere
                self.remove(index)
                continue
            if pid == 0:
                continue

            self.remove(index)
            _ensure_gone(job.pid, spare=set(spare) | set(self.pids()))
            finished.append((job.pid, raw_status))
        return finished

    def kill_all(self):
        """
        Kill every tracked background job (used when the shell exits).
        Returns: list of pids that were signalled
        """
        jobs = [self.remove(index) for index in range(self.capacity)]

        killed = []
        for job in jobs:
            if job is None:
                continue
            try:
                psutil.Process(job.pid).send_signal(signal.SIGKILL)
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied as e:
                print(f"Could not terminate job {job.pid}: {e}")
                continue
            killed.append(job.pid)
            try:
                os.waitpid(job.pid, 0)
            except ChildProcessError:
                # Reaped by the SIGCHLD handler in the meantime
                pass
        return killed
