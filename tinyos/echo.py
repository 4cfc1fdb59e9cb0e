"""The ``echo`` command: print a message a number of times."""

from __future__ import annotations

import re
import sys
from typing import TextIO

ECHO_BUFFER_SIZE = 128

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str | None) -> int:
    """Return the integer at the start of ``text``, or 0 when there is none."""
    if not text:
        return 0
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _parse_options(argv: list[str], spec: str) -> tuple[list[tuple[str, str | None]], int]:
    """Parse short options from ``argv[1:]`` the way POSIX getopt does.

    Returns the options found, in order, and the index of the first operand.
    An unknown option or a missing option argument is reported as
    ``("?", letter)`` and ends the parse.
    """
    options: list[tuple[str, str | None]] = []
    index = 1
    while index < len(argv):
        arg = argv[index]
        if arg == "--":
            index += 1
            break
        if not arg.startswith("-") or arg == "-":
            break
        index += 1
        pos = 1
        while pos < len(arg):
            letter = arg[pos]
            pos += 1
            at = spec.find(letter)
            if letter == ":" or at < 0:
                options.append(("?", letter))
                return options, index
            if spec[at + 1:at + 2] == ":":
                if pos < len(arg):
                    value = arg[pos:]
                elif index < len(argv):
                    value = argv[index]
                    index += 1
                else:
                    options.append(("?", letter))
                    return options, index
                options.append((letter, value))
                break
            options.append((letter, None))
    return options, index


def echo(argv: list[str], stdin: TextIO, stdout: TextIO, stderr: TextIO) -> int:
    """Run ``echo`` with ``argv`` (including the command name); returns 0 or -1.

    With no arguments a line is read from ``stdin`` and printed back.
    """
    if len(argv) == 1:
        line = stdin.readline(ECHO_BUFFER_SIZE - 1)
        stdout.write(line + "\n")
        return 0

    count = 1
    options, optind = _parse_options(argv, "n:h")
    for option, value in options:
        if option == "h":
            stdout.write("echo echo any message\n")
            stdout.write("Usage: echo [-n count] msg\n")
            return 0
        if option == "n":
            count = _atoi(value)
        else:
            stderr.write(f"Unknown option: -{value}\n")
            return -1

    if optind > len(argv) - 1:
        stderr.write("Message is empty \n")
        return -1

    message = argv[optind]
    stdout.write(f"{message}\n" * max(count, 0))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Command entry point; ``argv`` holds the arguments after the program name."""
    args = sys.argv[1:] if argv is None else list(argv)
    result = echo(["echo", *args], sys.stdin, sys.stdout, sys.stderr)
    sys.stdout.flush()
    return result