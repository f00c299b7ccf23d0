import os
from smallsh.job_control import describe_exit_code


def builtin_cd(args):
    """Change directory"""
    path = args[0] if args else os.getenv("HOME") or os.path.expanduser("~")
    try:
        os.chdir(path)
        return 0
    except OSError as e:
        print(f"cd: {e}")
        return 1


def builtin_status(state):
    """Print the exit value or terminating signal of the last foreground command"""
    print(describe_exit_code(state.last_status), flush=True)
    return 0


def execute_builtin(command, state):
    """
    Execute cd or status if the command names one.
    'exit' is handled by the shell loop.
    Returns: True if the command was a built-in
    """
    if command.program == "cd":
        builtin_cd(command.args[1:])
        return True
    if command.program == "status":
        builtin_status(state)
        return True
    return False
