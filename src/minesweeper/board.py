import logging
import random
import re
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

BOMB_PROBABILITY = 0.25
CRLF = "\r\n"

_HEADER_LINE = re.compile(r"([0-9]+) ([0-9]+)")
_ROW_LINE = re.compile(r"[01]( [01])*")


class MalformedBoardSource(ValueError):
    pass


# ==========================================
# Cell state
# ==========================================

@dataclass(frozen=True)
class Untouched:
    def token(self) -> str:
        return "-"


@dataclass(frozen=True)
class Flagged:
    def token(self) -> str:
        return "F"


@dataclass(frozen=True)
class Revealed:
    count: int

    def token(self) -> str:
        # zero renders blank so columns stay aligned
        return str(self.count) if self.count != 0 else " "


CellState = Union[Untouched, Flagged, Revealed]

UNTOUCHED = Untouched()
FLAGGED = Flagged()


@dataclass
class Cell:
    """A grid position: what players see plus whether a bomb sits under it."""
    state: CellState = UNTOUCHED
    is_bomb: bool = False


class Outcome(str, Enum):
    """Result of digging a cell."""
    SAFE = 'SAFE'
    EXPLODED = 'EXPLODED'


@dataclass
class BombLayout:
    """Parsed board file: row-major bombs[y][x]."""
    width: int
    height: int
    bombs: List[List[bool]] = field(default_factory=list)


def check_layout(layout: BombLayout) -> None:
    """Raise MalformedBoardSource unless bombs is a positive height x width grid."""
    if layout.width <= 0 or layout.height <= 0:
        raise MalformedBoardSource(
            f"board dimensions must be positive, got {layout.width}x{layout.height}")
    if len(layout.bombs) != layout.height:
        raise MalformedBoardSource(f"expected {layout.height} rows, got {len(layout.bombs)}")
    for y, row in enumerate(layout.bombs):
        if len(row) != layout.width:
            raise MalformedBoardSource(f"row {y} has {len(row)} entries, expected {layout.width}")


def parse_board_text(text: str) -> BombLayout:
    """
    Parse the board file format.

    FILE  ::= BOARD LINE+
    BOARD ::= X SPACE Y NEWLINE
    LINE  ::= (VAL SPACE)* VAL NEWLINE
    VAL   ::= 0 | 1

    X is the number of columns and Y the number of rows. Raises MalformedBoardSource.
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    lines = [line[:-1] if line.endswith("\r") else line for line in lines]

    if not lines:
        raise MalformedBoardSource("board source is empty")

    header = _HEADER_LINE.fullmatch(lines[0])
    if header is None:
        raise MalformedBoardSource(f"bad header line: {lines[0]!r}")
    width, height = int(header.group(1)), int(header.group(2))
    if width <= 0 or height <= 0:
        raise MalformedBoardSource(f"board dimensions must be positive, got {width}x{height}")

    rows = lines[1:]
    if len(rows) != height:
        raise MalformedBoardSource(f"expected {height} rows, got {len(rows)}")

    bombs = []
    for y, row in enumerate(rows):
        if _ROW_LINE.fullmatch(row) is None:
            raise MalformedBoardSource(f"row {y} is not a space-separated list of 0/1: {row!r}")
        values = row.split(" ")
        if len(values) != width:
            raise MalformedBoardSource(f"row {y} has {len(values)} entries, expected {width}")
        bombs.append([value == "1" for value in values])

    return BombLayout(width=width, height=height, bombs=bombs)


# ==========================================
# Board
# ==========================================

class Board:
    """
    A Minesweeper board shared by every connected player.

    Every public method takes the board's lock, so each call observes and
    leaves a consistent grid. Cells are addressed as (x, y) with x the column
    and y the row, (0, 0) being the top-left corner.
    """

    def __init__(self, width: int, height: int,
                 bomb_probability: float = BOMB_PROBABILITY,
                 rng: Optional[random.Random] = None):
        if width <= 0 or height <= 0:
            raise ValueError(f"board dimensions must be positive, got {width}x{height}")
        rng = rng or random.Random()

        self.width = width
        self.height = height
        self.lock = threading.Lock()
        self._cells: List[List[Cell]] = [
            [Cell(is_bomb=rng.random() < bomb_probability) for _ in range(width)]
            for _ in range(height)
        ]

    @classmethod
    def from_layout(cls, layout: BombLayout) -> "Board":
        check_layout(layout)
        board = cls(layout.width, layout.height, bomb_probability=0.0)
        for y, row in enumerate(layout.bombs):
            for x, bombed in enumerate(row):
                board._cells[y][x].is_bomb = bombed
        return board

    @classmethod
    def from_text(cls, text: str) -> "Board":
        return cls.from_layout(parse_board_text(text))

    @classmethod
    def from_file(cls, path) -> "Board":
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                text = f.read()
        except UnicodeDecodeError as e:
            raise MalformedBoardSource(f"{path} is not a text file") from e
        board = cls.from_text(text)
        logger.info(f"Loaded {board.width}x{board.height} board from {path}")
        return board

    # -------------------------------------------------------
    # Player operations
    # -------------------------------------------------------

    def dig(self, x: int, y: int) -> Outcome:
        with self.lock:
            if not self._in_board(x, y) or self._cells[y][x].state != UNTOUCHED:
                return Outcome.SAFE

            cell = self._cell(x, y)
            if not cell.is_bomb:
                self._flood_reveal(x, y)
                return Outcome.SAFE

            cell.is_bomb = False
            for nx, ny in self._neighbors(x, y):
                neighbor = self._cells[ny][nx]
                if isinstance(neighbor.state, Revealed):
                    neighbor.state = Revealed(neighbor.state.count - 1)
            self._flood_reveal(x, y)
            return Outcome.EXPLODED

    def flag(self, x: int, y: int) -> bool:
        with self.lock:
            if self._in_board(x, y) and self._cells[y][x].state == UNTOUCHED:
                self._cells[y][x].state = FLAGGED
                return True
            return False

    def deflag(self, x: int, y: int) -> bool:
        with self.lock:
            if self._in_board(x, y) and self._cells[y][x].state == FLAGGED:
                self._cells[y][x].state = UNTOUCHED
                return True
            return False

    def render(self) -> str:
        with self.lock:
            return "".join(
                " ".join(cell.state.token() for cell in row) + CRLF
                for row in self._cells
            )

    def __str__(self) -> str:
        return self.render()

    def dimensions(self) -> Tuple[int, int]:
        return self.width, self.height

    def size(self) -> int:
        return self.width * self.height

    # -------------------------------------------------------
    # Inspection / setup helpers, mostly for tests
    # -------------------------------------------------------

    def state(self, x: int, y: int) -> str:
        """Token of a single cell; Revealed(0) reads as "0" here."""
        with self.lock:
            state = self._cell(x, y).state
            if isinstance(state, Revealed):
                return str(state.count)
            return state.token()

    def is_bombed(self, x: int, y: int) -> bool:
        with self.lock:
            return self._cell(x, y).is_bomb

    def bomb_it(self, x: int, y: int) -> bool:
        """Place a bomb. Revealed counts are NOT renumbered."""
        with self.lock:
            cell = self._cell(x, y)
            if cell.is_bomb:
                return False
            cell.is_bomb = True
            return True

    def unbomb_it(self, x: int, y: int) -> bool:
        """Remove a bomb. Revealed counts are NOT renumbered."""
        with self.lock:
            cell = self._cell(x, y)
            if not cell.is_bomb:
                return False
            cell.is_bomb = False
            return True

    # -------------------------------------------------------
    # Internals (caller holds the lock)
    # -------------------------------------------------------

    def _in_board(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def _cell(self, x: int, y: int) -> Cell:
        if not self._in_board(x, y):
            raise IndexError(f"({x}, {y}) is outside the {self.width}x{self.height} board")
        return self._cells[y][x]

    def _neighbors(self, x: int, y: int):
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                if dx == 0 and dy == 0:
                    continue
                nx, ny = x + dx, y + dy
                if self._in_board(nx, ny):
                    yield nx, ny

    def _count_bombs_around(self, x: int, y: int) -> int:
        return sum(1 for nx, ny in self._neighbors(x, y) if self._cells[ny][nx].is_bomb)

    def _flood_reveal(self, start_x: int, start_y: int) -> None:
        """
        Reveal (start_x, start_y) and spread through zero-count cells.

        Flagged neighbors are revealed too; only Revealed cells stop the spread.
        """
        stack = [(start_x, start_y)]
        while stack:
            x, y = stack.pop()
            cell = self._cell(x, y)
            if isinstance(cell.state, Revealed):
                continue

            count = self._count_bombs_around(x, y)
            cell.state = Revealed(count)
            if count != 0:
                continue

            for nx, ny in self._neighbors(x, y):
                if not isinstance(self._cells[ny][nx].state, Revealed):
                    stack.append((nx, ny))
