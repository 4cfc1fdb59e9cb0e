"""Snake game played in a terminal with ANSI cursor control."""

from __future__ import annotations

import os
import random
import select
import sys
import time
from enum import IntEnum
from typing import TextIO

try:
    import termios
    import tty
except ImportError:
    termios = None
    tty = None

try:
    import msvcrt
except ImportError:
    msvcrt = None

ESC_CLEAR_SCREEN = "\x1b[2J"

KEY_UP = "w"
KEY_DOWN = "s"
KEY_LEFT = "a"
KEY_RIGHT = "d"
KEY_QUIT = "q"

ROW_MAX = 25
COL_MAX = 80
START_ROW = 10
START_COL = 20
AUTO_MOVE_TICKS = 50
TICK_SECONDS = 0.01

_STEPS = {
    KEY_LEFT: (0, -1),
    KEY_RIGHT: (0, 1),
    KEY_UP: (-1, 0),
    KEY_DOWN: (1, 0),
}


class SnakeStatus(IntEnum):
    NONE = 0
    ITSELF = 1
    WALL = 2
    FOOD = 3


class SnakeGame:
    """State of one game: the map size, the snake (head first) and the food."""

    def __init__(
        self,
        rows: int = ROW_MAX,
        cols: int = COL_MAX,
        out: TextIO | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if rows < 4 or cols < 4:
            raise ValueError("the map needs at least 4 rows and 4 columns")
        self.rows = rows
        self.cols = cols
        self.out = sys.stdout if out is None else out
        self.rng = random.Random() if rng is None else rng
        self.body: list[tuple[int, int]] = []
        self.food: tuple[int, int] | None = None
        self.status = SnakeStatus.NONE
        self.direction = KEY_LEFT

    @property
    def head(self) -> tuple[int, int]:
        if not self.body:
            raise RuntimeError("the snake has not been created")
        return self.body[0]

    def show_char(self, row: int, col: int, ch: str) -> None:
        self.out.write(f"\x1b[{row};{col}H{ch}\x1b[{row};{col}H")

    def show_string(self, row: int, col: int, text: str) -> None:
        self.out.write(f"\x1b[{row};{col}H{text}")

    def clear_map(self) -> None:
        self.out.write(ESC_CLEAR_SCREEN)

    def create_map(self) -> None:
        """Clear the screen and draw the border."""
        self.clear_map()
        for col in range(1, self.cols - 1):
            self.show_char(0, col, "=")
        for col in range(1, self.cols - 1):
            self.show_char(self.rows - 1, col, "=")
        for row in range(1, self.rows - 1):
            self.show_char(row, 0, "|")
        for row in range(1, self.rows - 1):
            self.show_char(row, self.cols - 1, "|")

    def create_snake(self) -> None:
        """Start a new snake of a single part, heading left."""
        self.body = [(START_ROW, START_COL)]
        self.status = SnakeStatus.NONE
        self.direction = KEY_LEFT
        self.show_char(START_ROW, START_COL, "*")

    def create_food(self) -> None:
        """Place food at a random spot inside the border, away from the snake's head."""
        while True:
            row = 1 + self.rng.randrange(self.rows - 3)
            col = 1 + self.rng.randrange(self.cols - 3)
            if (row, col) != self.head:
                self.food = (row, col)
                self.show_char(row, col, "*")
                return

    def is_hit_itself(self) -> bool:
        return self.head in self.body[1:]

    def is_hit_wall(self) -> bool:
        row, col = self.head
        return row <= 0 or col <= 0 or row >= self.rows - 1 or col >= self.cols - 1

    def is_hit_food(self) -> bool:
        return self.food is not None and self.head == self.food

    def _add_head(self, row: int, col: int) -> None:
        self.body.insert(0, (row, col))
        self.show_char(row, col, "*")

    def _remove_tail(self) -> None:
        row, col = self.body.pop()
        self.show_char(row, col, " ")

    def move_forward(self, key: str) -> None:
        """Move one step in the direction of ``key``; other keys are ignored.

        A step straight back onto the second part of the body is ignored too.
        """
        step = _STEPS.get(key)
        if step is None:
            return
        row, col = self.head
        next_pos = (row + step[0], col + step[1])
        if len(self.body) > 1 and self.body[1] == next_pos:
            return

        self._add_head(*next_pos)
        if self.is_hit_itself():
            self.status = SnakeStatus.ITSELF
            self._remove_tail()
        elif self.is_hit_wall():
            self.status = SnakeStatus.WALL
            self._remove_tail()
        elif self.is_hit_food():
            self.food = None
            self.create_food()
            self.status = SnakeStatus.FOOD
        else:
            self._remove_tail()
            self.status = SnakeStatus.NONE

        self.direction = key
        self.out.flush()

    def is_over(self) -> bool:
        return self.status in (SnakeStatus.ITSELF, SnakeStatus.WALL)


class _Keyboard:
    """Unbuffered, unechoed key input from a terminal."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream
        self._fd: int | None
        try:
            self._fd = stream.fileno()
        except (AttributeError, OSError, ValueError):
            self._fd = None
        self._saved = None

    def __enter__(self) -> "_Keyboard":
        if termios is not None and self._fd is not None and os.isatty(self._fd):
            self._saved = termios.tcgetattr(self._fd)
            tty.setcbreak(self._fd)
        return self

    def __exit__(self, *exc_info) -> None:
        if self._saved is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
            self._saved = None

    def getchar(self) -> str:
        if msvcrt is not None and self._fd is not None and os.isatty(self._fd):
            return msvcrt.getwch()
        if self._fd is None:
            return self.stream.read(1)
        return os.read(self._fd, 1).decode(errors="replace")

    def poll(self) -> str | None:
        """Return a key if one is waiting, else None."""
        if msvcrt is not None and self._fd is not None and os.isatty(self._fd):
            return msvcrt.getwch() if msvcrt.kbhit() else None
        if self._fd is None:
            return None
        ready, _, _ = select.select([self._fd], [], [], 0)
        if not ready:
            return None
        return self.getchar() or None


def _show_welcome(game: SnakeGame, keyboard: _Keyboard) -> None:
    game.clear_map()
    game.show_string(0, 0, "Welcome to sname game")
    game.show_string(1, 0, "Use a.w.s.d to move snake")
    game.show_string(2, 0, "Press any key to start game")
    game.out.flush()
    keyboard.getchar()


def main(argv: list[str] | None = None) -> int:
    """Play the game on the process's terminal."""
    game = SnakeGame(ROW_MAX, COL_MAX, sys.stdout, random.Random())
    with _Keyboard(sys.stdin) as keyboard:
        _show_welcome(game, keyboard)
        game.create_map()
        game.create_snake()
        game.create_food()
        game.out.flush()

        ticks = 0
        while True:
            key = keyboard.poll()
            if key:
                game.move_forward(key)
            else:
                ticks += 1
                if ticks % AUTO_MOVE_TICKS == 0:
                    game.move_forward(game.direction)

            if game.is_over():
                row, col = game.rows // 2, game.cols // 2
                game.show_string(row, col, "GAME OVER")
                game.show_string(row + 1, col, "Press Any key to continue")
                game.out.flush()
                keyboard.getchar()
                break

            time.sleep(TICK_SECONDS)

    game.clear_map()
    game.out.flush()
    return 0