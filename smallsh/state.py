import os
from smallsh.job_control import JobTable


class ShellState:
    """
    Process-wide shell state shared between the shell loop and the
    signal handlers.

    last_status follows the subprocess returncode convention: a
    non-negative exit value, or the negated number of the signal that
    terminated the last foreground command.
    """

    def __init__(self, jobs=None, pid=None):
        self.pid = pid if pid is not None else os.getpid()
        self.jobs = jobs if jobs is not None else JobTable()
        self.foreground_pid = None
        self.interrupted_pid = None
        self.last_status = 0
        self.foreground_only = False

    def toggle_foreground_only(self):
        self.foreground_only = not self.foreground_only
        return self.foreground_only
