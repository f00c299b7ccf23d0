import os

# Prompt printed before each command line
PROMPT = os.getenv("SMALLSH_PROMPT", ": ")

# Maximum number of background jobs tracked at once
MAX_JOBS = 50

NULL_DEVICE = os.devnull

# Token expanded to the shell's own pid
PID_MARKER = "$$"
COMMENT_PREFIX = "#"

# Permission bits for files created by output redirection (umask applies)
OUTPUT_MODE = 0o666
