"""A small command line interpreter with built-in file commands."""

from __future__ import annotations

import io
import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, TextIO

from tinyos.echo import _parse_options, echo

CLI_INPUT_SIZE = 1024
CLI_MAX_ARG_COUNT = 10
PROMPT = "sh >>"


def _esc_cmd2(param: int, cmd: str) -> str:
    return f"\x1b[{param}{cmd}"


ESC_COLOR_ERROR = _esc_cmd2(31, "m")
ESC_COLOR_DEFAULT = _esc_cmd2(39, "m")
ESC_CLEAR_SCREEN = _esc_cmd2(2, "J")


def _esc_move_cursor(row: int, col: int) -> str:
    return f"\x1b[{row};{col}H"


_LESS_BUFFER_SIZE = 255


@dataclass(frozen=True)
class Command:
    """A built-in command: its name, a usage line and the function that runs it."""

    name: str
    usage: str
    func: Callable[[list[str]], int]


def find_exec_path(file_name: str) -> str | None:
    """Return ``file_name`` or ``file_name.elf`` when that file exists, else None."""
    for candidate in (file_name, f"{file_name}.elf"):
        try:
            with open(candidate, "rb"):
                return candidate
        except OSError:
            continue
    return None


def _fileno(stream) -> int | None:
    try:
        return stream.fileno()
    except (AttributeError, OSError, io.UnsupportedOperation):
        return None


class Shell:
    """Reads command lines and runs built-in or external commands."""

    def __init__(
        self,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        prompt: str = PROMPT,
    ) -> None:
        self.stdin = sys.stdin if stdin is None else stdin
        self.stdout = sys.stdout if stdout is None else stdout
        self.stderr = sys.stderr if stderr is None else stderr
        self.prompt = prompt
        self.commands = [
            Command("help", "help -- list support command", self.do_help),
            Command("clear", "clear -- clear the screen", self.do_clear),
            Command("echo", "echo [-n count] msg  -- echo something", self.do_echo),
            Command("ls", "ls [dir] -- list director", self.do_ls),
            Command("less", "list text file content", self.do_less),
            Command("cp", "cp from to -- copy file", self.do_cp),
            Command("rm", "rm file -- remove file", self.do_rm),
            Command("quit", "quit from shell", self.do_quit),
        ]

    def find_builtin(self, name: str) -> Command | None:
        """Return the built-in command called ``name``, if any."""
        for command in self.commands:
            if command.name == name:
                return command
        return None

    def _run_builtin(self, command: Command, argv: list[str]) -> int:
        result = command.func(argv)
        if result < 0:
            self.stderr.write(f"{ESC_COLOR_ERROR}error: {result}\n{ESC_COLOR_DEFAULT}")
        return result

    def _run_exec_file(self, path: str, argv: list[str]) -> int:
        in_fd = _fileno(self.stdin)
        out_fd = _fileno(self.stdout)
        err_fd = _fileno(self.stderr)
        self.stdout.flush()
        try:
            process = subprocess.Popen(
                argv,
                executable=os.path.abspath(path),
                stdin=subprocess.DEVNULL if in_fd is None else in_fd,
                stdout=subprocess.PIPE if out_fd is None else out_fd,
                stderr=subprocess.PIPE if err_fd is None else err_fd,
            )
        except OSError:
            self.stderr.write(f"exec failed: {path}")
            return -1
        out, err = process.communicate()
        if out:
            self.stdout.write(out.decode(errors="replace"))
        if err:
            self.stderr.write(err.decode(errors="replace"))
        status = process.returncode
        self.stderr.write(f"cmd {path} result: {status}, pid = {process.pid}\n")
        return status

    def run_line(self, line: str) -> int | None:
        """Run one command line; returns the command's result, or None for a blank line."""
        line = line[:CLI_INPUT_SIZE - 1]
        line = line.split("\n", 1)[0].split("\r", 1)[0]
        argv = [token for token in line.split(" ") if token][:CLI_MAX_ARG_COUNT]
        if not argv:
            return None

        command = self.find_builtin(argv[0])
        if command is not None:
            return self._run_builtin(command, argv)

        path = find_exec_path(argv[0])
        if path is not None:
            return self._run_exec_file(path, argv)

        shown = line[:line.find(argv[0]) + len(argv[0])]
        self.stderr.write(f"{ESC_COLOR_ERROR}Unknown command: {shown}\n{ESC_COLOR_DEFAULT}")
        return -1

    def run(self) -> int:
        """Read and run lines until end of input or ``quit``; returns the exit code."""
        try:
            while True:
                self.stdout.write(self.prompt)
                self.stdout.flush()
                line = self.stdin.readline(CLI_INPUT_SIZE - 1)
                if not line:
                    break
                self.run_line(line)
        except SystemExit as exc:
            code = exc.code
            return code if isinstance(code, int) else 0
        return 0

    def do_help(self, argv: list[str]) -> int:
        for command in self.commands:
            self.stdout.write(f"{command.name} {command.usage}\n")
        return 0

    def do_clear(self, argv: list[str]) -> int:
        self.stdout.write(ESC_CLEAR_SCREEN)
        self.stdout.write(_esc_move_cursor(0, 0))
        return 0

    def do_echo(self, argv: list[str]) -> int:
        return echo(argv, self.stdin, self.stdout, self.stderr)

    def do_ls(self, argv: list[str]) -> int:
        directory = argv[1] if len(argv) > 1 else "temp"
        try:
            with os.scandir(directory) as entries:
                listing = sorted(entries, key=lambda entry: entry.name.lower())
                lines = []
                for entry in listing:
                    kind = "d" if entry.is_dir() else "f"
                    size = entry.stat().st_size
                    lines.append(f"{kind} {entry.name.lower()} {size}\n")
        except OSError:
            self.stdout.write("open dir failed\n")
            return -1
        self.stdout.writelines(lines)
        return 0

    def do_less(self, argv: list[str]) -> int:
        line_mode = False
        options, optind = _parse_options(argv, "lh")
        for option, value in options:
            if option == "h":
                self.stdout.write("show file content\n")
                self.stdout.write("less [-l] file\n")
                self.stdout.write("-l show file line by line.\n")
            elif option == "l":
                line_mode = True
            else:
                self.stderr.write(f"Unknown option: -{value}\n")
                return -1

        if optind > len(argv) - 1:
            self.stderr.write("no file\n")
            return -1

        name = argv[optind]
        try:
            file = open(name, "r", errors="replace")
        except OSError:
            self.stderr.write(f"open file failed. {name}")
            return -1

        with file:
            if not line_mode:
                for chunk in iter(lambda: file.readline(_LESS_BUFFER_SIZE - 1), ""):
                    self.stdout.write(chunk)
                return 0
            for chunk in iter(lambda: file.readline(_LESS_BUFFER_SIZE - 1), ""):
                self.stdout.write(chunk)
                self.stdout.flush()
                while True:
                    key = self.stdin.read(1)
                    if key == "n":
                        break
                    if key in ("q", ""):
                        return 0
        return 0

    def do_cp(self, argv: list[str]) -> int:
        if len(argv) < 3:
            self.stdout.write("no [from] or no [to]\n")
            return -1

        source = target = None
        try:
            try:
                source = open(argv[1], "rb")
            except OSError:
                source = None
            try:
                target = open(argv[2], "wb")
            except OSError:
                target = None
            if source is None or target is None:
                self.stdout.write("open file failed.\n")
                return 0
            shutil.copyfileobj(source, target, _LESS_BUFFER_SIZE)
        finally:
            if source is not None:
                source.close()
            if target is not None:
                target.close()
        return 0

    def do_rm(self, argv: list[str]) -> int:
        if len(argv) < 2:
            self.stderr.write("no file")
            return -1
        try:
            os.unlink(argv[1])
        except OSError:
            self.stderr.write(f"rm file failed: {argv[1]}")
            return -1
        return 0

    def do_quit(self, argv: list[str]) -> int:
        """Flush pending output and leave the shell with exit code 0."""
        self.stdout.flush()
        self.stderr.flush()
        raise SystemExit(0)


def main(argv: list[str] | None = None) -> int:
    """Start an interactive shell on the process's standard streams."""
    return Shell(sys.stdin, sys.stdout, sys.stderr).run()