import os
from smallsh.command import Command
from smallsh.config import PID_MARKER, COMMENT_PREFIX


class ParseError(ValueError):
    """Raised for a command line that cannot be turned into a Command."""


def expand_pid(token, pid=None):
    """Replace the first $$ in token with the shell pid."""
    if PID_MARKER not in token:
        return token
    if pid is None:
        pid = os.getpid()
    return token.replace(PID_MARKER, str(pid), 1)


def parse_command(line, pid=None, foreground_only=False):
    """
    Parse a command line into a Command.
    Grammar: word [word...] [< file] [> file] [&] [# comment]
    Returns: Command (args empty for blank or comment lines)
    """
    command = Command()
    tokens = line.split()
    i = 0

    while i < len(tokens):
        tok = tokens[i]

        if tok in ("<", ">"):
            if i + 1 >= len(tokens):
                raise ParseError(f"syntax error: expected file name after '{tok}'")
            path = expand_pid(tokens[i + 1], pid)
            if tok == "<":
                command.input_file = path
            else:
                command.output_file = path
            i += 2
            continue

        if tok.startswith(COMMENT_PREFIX):
            break

        if tok == "&":
            # Dropped entirely while foreground-only mode is on
            if not foreground_only:
                command.background = True
        else:
            command.args.append(expand_pid(tok, pid))
        i += 1

    return command
