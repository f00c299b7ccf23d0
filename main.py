import sys
from smallsh.shell import main_loop


def main():
    try:
        return main_loop()
    except OSError as e:
        # Descriptor duplication or fork failed: the shell cannot go on
        print(f"smallsh: fatal: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
