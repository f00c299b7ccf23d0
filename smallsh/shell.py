from smallsh.config import PROMPT
from smallsh.state import ShellState
from smallsh.signals import SignalRouter
from smallsh.parser import parse_command, ParseError
from smallsh.builtin import execute_builtin
from smallsh.executor import execute_command


def run_line(line, state):
    """
    Parse and dispatch one command line.
    Returns: False when the shell should exit, True otherwise
    """
    try:
        command = parse_command(line, pid=state.pid, foreground_only=state.foreground_only)
    except ParseError as e:
        print(f"smallsh: {e}", flush=True)
        return True

    if command.is_empty:
        return True

    if command.program == "exit":
        return False

    if execute_builtin(command, state):
        return True

    status = execute_command(command, state)
    # Only foreground commands update the status built-in
    if not command.background:
        state.last_status = status
    return True


def main_loop(state=None):
    """Main shell loop"""
    state = state or ShellState()
    router = SignalRouter(state)
    router.install()

    try:
        while True:
            try:
                line = input(PROMPT)
            except EOFError:
                print()
                break

            if not run_line(line, state):
                break

    finally:
        state.jobs.kill_all()
        router.restore()

    return 0
