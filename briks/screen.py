"""Cell buffers, and the Renderer that draws only their differences."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Iterator

from .color import Color, encode_color
from .core import (
    RESET_STYLE,
    SET_CURSOR,
    ColorSpace,
    RenderDesync,
    TerminalIOError,
    get_color_space,
)
from .style import Modifier, Style, modifier_codes

if TYPE_CHECKING:
    from .terminal import Terminal

__all__ = [
    "Cell",
    "Buffer",
    "Renderer",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cell:
    """A single position of the terminal grid.

    A double-width character is stored in its leftmost cell, followed by a
    continuation cell whose symbol is empty.
    """

    symbol: str = " "
    foreground: Color | None = None
    background: Color | None = None
    modifiers: Modifier = Modifier.NONE

    @classmethod
    def styled(cls, symbol: str, style: Style) -> Cell:
        """Creates a cell showing `symbol` in the given style."""

        return cls(symbol, style.foreground, style.background, style.modifiers)

    @property
    def is_continuation(self) -> bool:
        """Returns whether this is the right half of a double-width character."""

        return self.symbol == ""

    @property
    def style(self) -> Style:
        """Returns the style of this cell."""

        return Style(self.foreground, self.background, self.modifiers)


BLANK = Cell()


class Buffer:
    """A width x height grid of cells."""

    def __init__(self, width: int, height: int, fill: Cell = BLANK) -> None:
        self.width = max(width, 0)
        self.height = max(height, 0)

        self._cells: list[list[Cell]] = [
            [fill] * self.width for _ in range(self.height)
        ]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Buffer):
            return NotImplemented

        return self.size == other.size and self._cells == other._cells

    def __repr__(self) -> str:
        return f"{type(self).__name__}(width={self.width}, height={self.height})"

    @property
    def size(self) -> tuple[int, int]:
        """Returns the (width, height) of the grid."""

        return self.width, self.height

    def contains(self, x: int, y: int) -> bool:
        """Returns whether (x, y) lies within the grid."""

        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, x: int, y: int) -> Cell:
        """Returns the cell at (x, y)."""

        if not self.contains(x, y):
            raise IndexError(f"Position {(x, y)} is outside of {self.size}.")

        return self._cells[y][x]

    def set(self, x: int, y: int, cell: Cell) -> None:
        """Replaces the cell at (x, y). Positions outside of the grid are ignored.

        Overwriting either half of a double-width character blanks its other
        half, so the grid never holds half a character.
        """

        if not self.contains(x, y):
            return

        row = self._cells[y]
        current = row[x]

        if current.is_continuation and not cell.is_continuation and x > 0:
            row[x - 1] = replace(row[x - 1], symbol=" ")

        elif (
            not current.is_continuation
            and x + 1 < self.width
            and row[x + 1].is_continuation
        ):
            row[x + 1] = replace(current, symbol=" ")

        row[x] = cell

    def rows(self) -> Iterator[list[Cell]]:
        """Iterates over copies of the rows, top to bottom."""

        for row in self._cells:
            yield list(row)

    def text(self) -> list[str]:
        """Returns the symbols of each row, joined into strings."""

        return ["".join(cell.symbol for cell in row) for row in self._cells]


class Renderer:
    """Writes buffers to the terminal, sending only what changed since the last one.

    The renderer owns the buffer that was last drawn successfully, and compares
    every new buffer against it. Changed cells are grouped into runs, and each
    run costs one cursor movement at most, plus the SGR codes that differ from
    the previous cell written.
    """

    def __init__(self, terminal: Terminal, color_space: ColorSpace | None = None) -> None:
        self.terminal = terminal
        self.color_space = color_space or get_color_space()

        self._previous: Buffer | None = None
        self._force_redraw = False
        self._pen_unknown = False

    @property
    def previous(self) -> Buffer | None:
        """Returns the last buffer that was fully written to the terminal."""

        return self._previous

    def invalidate(self) -> None:
        """Makes the next render repaint every cell."""

        self._force_redraw = True

    def render(self, buffer: Buffer) -> int:
        """Draws the buffer's differences from the previous one.

        A size change (or a pending invalidation) repaints every cell. Nothing is
        written if no cell changed.

        Returns:
            The number of bytes written.

        Raises:
            RenderDesync: The terminal failed during the write. The previous
                buffer is kept, and the next render resets the style and
                repaints everything.
        """

        previous = self._previous
        redraw = (
            self._force_redraw or previous is None or previous.size != buffer.size
        )

        output = self._diff(None if redraw else previous, buffer)

        # A failed write may have left any style active on the terminal.
        if output and self._pen_unknown:
            output = RESET_STYLE + output

        if output:
            data = output.encode("utf-8")

            try:
                self.terminal.write(data)

            except TerminalIOError as exc:
                self._force_redraw = True
                self._pen_unknown = True
                logger.error("render failed after a partial write, repainting next frame")

                raise RenderDesync("The frame could not be written.") from exc

        else:
            data = b""

        self._previous = buffer
        self._force_redraw = False
        self._pen_unknown = False

        return len(data)

    def _encode_pen(self, cell: Cell) -> tuple[str, str, Modifier]:
        """Returns the foreground & background parameters, and modifiers of a cell."""

        return (
            encode_color(cell.foreground, False, self.color_space),
            encode_color(cell.background, True, self.color_space),
            cell.modifiers,
        )

    def _diff(self, previous: Buffer | None, buffer: Buffer) -> str:
        """Builds the output that turns `previous` into `buffer`.

        With no previous buffer every cell counts as changed.
        """

        default_pen = self._encode_pen(BLANK)
        pen = default_pen
        cursor: tuple[int, int] | None = None

        chunks: list[str] = []

        for y in range(buffer.height):
            x = 0

            while x < buffer.width:
                if previous is not None and buffer.get(x, y) == previous.get(x, y):
                    x += 1
                    continue

                start = x

                while x < buffer.width and (
                    previous is None or buffer.get(x, y) != previous.get(x, y)
                ):
                    x += 1

                # Runs are widened to whole characters.
                if buffer.get(start, y).is_continuation and start > 0:
                    start -= 1

                while x < buffer.width and buffer.get(x, y).is_continuation:
                    x += 1

                if cursor != (start, y):
                    chunks.append(SET_CURSOR.format(row=y + 1, column=start + 1))

                for column in range(start, x):
                    cell = buffer.get(column, y)

                    if cell.is_continuation:
                        continue

                    new_pen = self._encode_pen(cell)

                    if new_pen != pen:
                        chunks.append(_pen_change(pen, new_pen))
                        pen = new_pen

                    chunks.append(cell.symbol)

                cursor = (min(x, buffer.width), y)

        if pen != default_pen:
            chunks.append(RESET_STYLE)

        return "".join(chunks)


def _pen_change(
    old: tuple[str, str, Modifier], new: tuple[str, str, Modifier]
) -> str:
    """Returns the SGR sequence changing only the pen fields that differ."""

    codes = modifier_codes(old[2], new[2])

    if old[0] != new[0]:
        codes.append(new[0])

    if old[1] != new[1]:
        codes.append(new[1])

    return f"\x1b[{';'.join(codes)}m"
