"""The Frame class, the surface applications draw on."""

from __future__ import annotations

import unicodedata
from contextlib import contextmanager
from typing import Callable, Generator, TypeVar

from wcwidth import wcwidth

from .screen import Buffer, Cell
from .style import Style, StyleStack

__all__ = ["Frame"]

T = TypeVar("T")


class Frame:
    """A grid of cells for one draw pass, along with its style stack.

    Text is written in the stack's effective style. Styles are applied with
    `styled` or `with_style`, which always undo themselves, so drawing code
    can't leak a style into the rest of the frame.
    """

    def __init__(self, width: int, height: int, base_style: Style = Style()) -> None:
        self.buffer = Buffer(width, height)
        self.styles = StyleStack(base_style)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(width={self.width}, height={self.height})"

    @property
    def width(self) -> int:
        return self.buffer.width

    @property
    def height(self) -> int:
        return self.buffer.height

    @property
    def style(self) -> Style:
        """Returns the effective style."""

        return self.styles.effective()

    def write_str(self, x: int, y: int, text: str) -> int:
        """Writes text starting at (x, y), in the effective style.

        Text is clipped to the frame. Wide characters take two cells (and are
        dropped rather than split at the right edge), combining characters join
        the cell before them, and control characters are skipped.

        Returns:
            The number of columns the text advanced.
        """

        if not 0 <= y < self.height:
            return 0

        style = self.style
        start = cursor = x
        previous: int | None = None
        previous_width = 1

        for char in text:
            # wcwidth gives NUL a width of 0, which would join it to a cell.
            if unicodedata.category(char) == "Cc":
                continue

            width = wcwidth(char)

            if width < 0:
                continue

            if width == 0:
                if previous is not None:
                    cell = self.buffer.get(previous, y)
                    self.buffer.set(previous, y, Cell.styled(cell.symbol + char, style))

                    if previous_width == 2:
                        self.buffer.set(previous + 1, y, Cell.styled("", style))

                continue

            if cursor + width > self.width:
                break

            if cursor >= 0:
                self.buffer.set(cursor, y, Cell.styled(char, style))

                if width == 2:
                    self.buffer.set(cursor + 1, y, Cell.styled("", style))

                previous = cursor
                previous_width = width

            else:
                previous = None

            cursor += width

        return cursor - start

    def set_cell(self, x: int, y: int, cell: Cell) -> None:
        """Replaces a single cell. Positions outside the frame are ignored."""

        self.buffer.set(x, y, cell)

    def fill(self, style: Style | None = None) -> None:
        """Fills the frame with blank cells of the given (or effective) style."""

        effective = self.style if style is None else self.style.patch(style)
        cell = Cell.styled(" ", effective)

        for y in range(self.height):
            for x in range(self.width):
                self.buffer.set(x, y, cell)

    @contextmanager
    def styled(self, style: Style) -> Generator[Frame, None, None]:
        """Applies a style layer for the duration of the context."""

        with self.styles.scoped(style):
            yield self

    def with_style(self, style: Style, draw: Callable[[Frame], T]) -> T:
        """Calls `draw` with this frame, the given style layer applied.

        The layer is removed when `draw` returns or raises.
        """

        with self.styled(style):
            return draw(self)
