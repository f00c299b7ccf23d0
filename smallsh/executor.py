import os
import sys
import signal
from smallsh.config import NULL_DEVICE, OUTPUT_MODE
from smallsh.signals import blocked_signals


def _child_error(message):
    """Report a child-side failure on stderr (the child's stdout may be redirected)."""
    os.write(2, (message + "\n").encode())


def _redirect(path, flags, target_fd, mode=0o666):
    fd = os.open(path, flags, mode)
    if fd != target_fd:
        os.dup2(fd, target_fd)
        os.close(fd)


def _reset_child_signals(command, old_mask):
    # Dispositions must be settled before the mask is lifted, so the
    # shell's own handlers never run inside the child.
    signal.signal(signal.SIGTSTP, signal.SIG_IGN)
    signal.signal(signal.SIGINT, signal.SIG_IGN if command.background else signal.SIG_DFL)
    signal.signal(signal.SIGCHLD, signal.SIG_DFL)
    signal.pthread_sigmask(signal.SIG_SETMASK, old_mask)


def _run_child(command, old_mask):
    """
    Child side of the fork: redirect descriptors and exec.
    Never returns.
    """
    try:
        _reset_child_signals(command, old_mask)

        if command.background:
            try:
                if command.output_file is None:
                    _redirect(NULL_DEVICE, os.O_WRONLY, 1)
                if command.input_file is None:
                    _redirect(NULL_DEVICE, os.O_RDONLY, 0)
            except OSError:
                _child_error(f"smallsh: cannot open {NULL_DEVICE}")
                os._exit(1)

        if command.output_file is not None:
            try:
                _redirect(command.output_file,
                          os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 1, OUTPUT_MODE)
            except OSError:
                _child_error(f"cannot open {command.output_file} for output")
                os._exit(1)

        if command.input_file is not None:
            try:
                _redirect(command.input_file, os.O_RDONLY, 0)
            except OSError:
                _child_error(f"cannot open {command.input_file} for input")
                os._exit(1)

        try:
            os.execvp(command.program, command.args)
        except OSError:
            _child_error(f"{command.program}: no such file or directory")
    finally:
        os._exit(1)


def _wait_foreground(pid, state):
    """Block until the foreground child ends. Returns its exit code."""
    try:
        _, raw_status = os.waitpid(pid, 0)
    finally:
        state.foreground_pid = None

    if state.interrupted_pid == pid and os.WIFSIGNALED(raw_status):
        # Killed by the interrupt handler: report the interrupt, not SIGKILL
        state.interrupted_pid = None
        return -int(signal.SIGINT)
    return os.waitstatus_to_exitcode(raw_status)


def execute_command(command, state):
    """
    Run an external command in a child process.
    Returns: exit code of a foreground command (negative signal number if
    it was killed by a signal), 0 once a background command has started,
    1 if a background command was refused because the job table is full.
    Raises: OSError if descriptors cannot be duplicated or fork fails.
    """
    if command.background and state.jobs.full:
        print(f"smallsh: too many background jobs ({state.jobs.capacity})", flush=True)
        return 1

    saved_stdin = os.dup(0)
    try:
        saved_stdout = os.dup(1)
    except OSError:
        os.close(saved_stdin)
        raise

    try:
        sys.stdout.flush()
        sys.stderr.flush()

        # Routed signals stay blocked until the pid is recorded, so neither
        # the reaper nor the interrupt handler can miss this child.
        with blocked_signals() as old_mask:
            pid = os.fork()
            if pid == 0:
                _run_child(command, old_mask)

            if command.background:
                state.jobs.add(pid)
                print(f"background pid is {pid}", flush=True)
            else:
                state.interrupted_pid = None
                state.foreground_pid = pid

        if command.background:
            return 0
        return _wait_foreground(pid, state)

    finally:
        if command.redirects:
            os.dup2(saved_stdin, 0)
            os.dup2(saved_stdout, 1)
        os.close(saved_stdin)
        os.close(saved_stdout)
