"""
Random art visualization of key fingerprints.
Two-phase algorithm: walk (builds Field) -> render (ASCII output).

A worm starts in the middle of a fixed field and crawls over it, driven two
bits at a time by the digest bytes, augmenting every cell it lands on. If the
picture is different, the key is different. If the picture looks the same,
you still know nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import BinaryIO, Iterable, Iterator

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Field sizes are odd so the start sits in the exact middle.
BASE = 8
WIDTH = BASE * 2 + 1
HEIGHT = BASE + 1

# Drawn one after the other each time the worm crosses its own trail.
GLYPHS = " .o+=*BOX@%&#/^SE"

START_MARK = len(GLYPHS) - 2  # 'S'
END_MARK = len(GLYPHS) - 1  # 'E'
MAX_VISITS = len(GLYPHS) - 3  # Accumulated counts stop here ('^')

# Border rows and content rows each end in a newline, except the last border.
OUTPUT_LENGTH = (WIDTH + 3) * (HEIGHT + 2) - 1

READ_SIZE = 1024


class Direction(Enum):
    """Diagonal move decoded from one 2-bit command."""

    NW = (-1, -1)  # 0b00
    NE = (1, -1)  # 0b01
    SW = (-1, 1)  # 0b10
    SE = (1, 1)  # 0b11

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]


class FailureReason(Enum):
    """Reason why rendering failed."""

    RESOURCE_EXHAUSTED = "resource_exhausted"  # Output buffer could not be allocated


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class Position:
    """A cell position within the field, (0, 0) being the top-left corner."""

    x: int
    y: int


CENTER = Position(WIDTH // 2, HEIGHT // 2)


@dataclass
class Field:
    """
    Visit counters for every cell, indexed as cells[x][y].

    Only alive for the duration of a single render; never shared.
    """

    cells: list[list[int]] = dataclass_field(
        default_factory=lambda: [[0] * HEIGHT for _ in range(WIDTH)]
    )
    cursor: Position = CENTER

    def count(self, pos: Position) -> int:
        return self.cells[pos.x][pos.y]

    def visit(self, pos: Position) -> None:
        """Augment a cell, saturating at MAX_VISITS."""
        if self.cells[pos.x][pos.y] < MAX_VISITS:
            self.cells[pos.x][pos.y] += 1

    def mark(self, pos: Position, value: int) -> None:
        self.cells[pos.x][pos.y] = value


@dataclass(frozen=True)
class RenderFailure:
    """Returned instead of a picture when rendering could not complete."""

    reason: FailureReason
    details: str = ""


# =============================================================================
# Phase 1: Walk
# =============================================================================


def decode_moves(data: Iterable[int]) -> Iterator[Direction]:
    """
    Decode each byte into four moves, lowest bit pair first.

    Bit 0 picks the horizontal step (set = right), bit 1 the vertical step
    (set = down). Every byte value is a valid sequence of moves.

    Raises:
        ValueError: If an item is not in range 0..255
    """
    for byte in data:
        if not 0 <= byte <= 0xFF:
            raise ValueError(f"Not a byte value: {byte!r}")
        for _ in range(4):
            match byte & 0x3:
                case 0b00:
                    yield Direction.NW
                case 0b01:
                    yield Direction.NE
                case 0b10:
                    yield Direction.SW
                case _:
                    yield Direction.SE
            byte >>= 2


def step(pos: Position, direction: Direction) -> Position:
    """
    Move one cell diagonally, clamped to the field.

    Bumping into a wall drops the movement along that axis for this turn;
    the worm is never reflected or wrapped around.
    """
    x = min(max(pos.x + direction.dx, 0), WIDTH - 1)
    y = min(max(pos.y + direction.dy, 0), HEIGHT - 1)
    return Position(x, y)


def walk(data: Iterable[int]) -> Field:
    """
    Run the worm over a fresh field and mark its start and end points.

    The start marker is written first, so when the walk ends back in the
    middle the end marker replaces it.

    Args:
        data: The digest bytes (any iterable of ints in range 0..255)

    Returns:
        The populated Field, with cursor at the final position
    """
    result = Field()
    pos = CENTER
    moves = 0
    for direction in decode_moves(data):
        pos = step(pos, direction)
        result.visit(pos)
        moves += 1

    result.mark(CENTER, START_MARK)
    result.mark(pos, END_MARK)
    result.cursor = pos

    logger.debug(
        "walk: bytes=%d, end=(%d, %d), returned_to_center=%s",
        moves // 4,
        pos.x,
        pos.y,
        pos == CENTER,
    )
    return result


# =============================================================================
# Phase 2: Render (ASCII)
# =============================================================================


def render_field(field: Field) -> str:
    """Draw a populated field inside a +---+ frame, without a trailing newline."""
    border = "+" + "-" * WIDTH + "+"

    lines = [border]
    for y in range(HEIGHT):
        row = "".join(GLYPHS[min(field.cells[x][y], END_MARK)] for x in range(WIDTH))
        lines.append("|" + row + "|")
    lines.append(border)

    return "\n".join(lines)


def render(data: Iterable[int]) -> str | RenderFailure:
    """
    Render a digest as random art.

    Args:
        data: The digest bytes (any iterable of ints in range 0..255)

    Returns:
        The picture, exactly OUTPUT_LENGTH characters long, or a
        RenderFailure if the output could not be allocated
    """
    field = walk(data)
    try:
        return render_field(field)
    except MemoryError as exc:
        logger.error("render: could not allocate %d characters", OUTPUT_LENGTH)
        return RenderFailure(
            FailureReason.RESOURCE_EXHAUSTED,
            f"could not allocate {OUTPUT_LENGTH} characters for the picture ({exc})",
        )


def render_stream(stream: BinaryIO) -> str | RenderFailure:
    """
    Read a binary stream until it is exhausted, then render it.

    A stream that never ends never returns; bound it before handing it over.
    """
    data = bytearray()
    while chunk := stream.read(READ_SIZE):
        data.extend(chunk)
    return render(data)
