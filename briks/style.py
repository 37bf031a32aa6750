"""Text styles, and the stack that scopes them during a drawing pass."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, replace
from enum import Flag
from typing import Generator

from .color import Color
from .core import StackUnderflow, UnbalancedStyles

__all__ = [
    "Modifier",
    "Style",
    "StyleStack",
]


class Modifier(Flag):
    """Text attributes set through SGR.

    These are unrelated to `KeyModifiers`, which describe held keys.
    """

    NONE = 0
    BOLD = 1
    DIM = 2
    ITALIC = 4
    UNDERLINE = 8
    BLINK = 16
    REVERSED = 32
    HIDDEN = 64
    STRIKETHROUGH = 128


SETTERS = {
    Modifier.BOLD: "1",
    Modifier.DIM: "2",
    Modifier.ITALIC: "3",
    Modifier.UNDERLINE: "4",
    Modifier.BLINK: "5",
    Modifier.REVERSED: "7",
    Modifier.HIDDEN: "8",
    Modifier.STRIKETHROUGH: "9",
}

# Bold and dim share their unsetter.
UNSETTERS = {
    Modifier.BOLD: "22",
    Modifier.DIM: "22",
    Modifier.ITALIC: "23",
    Modifier.UNDERLINE: "24",
    Modifier.BLINK: "25",
    Modifier.REVERSED: "27",
    Modifier.HIDDEN: "28",
    Modifier.STRIKETHROUGH: "29",
}


def modifier_codes(old: Modifier, new: Modifier) -> list[str]:
    """Returns the SGR parameters that turn the `old` attributes into `new`."""

    codes: list[str] = []
    removed = old & ~new
    added = new & ~old

    for modifier, code in UNSETTERS.items():
        if modifier & removed and code not in codes:
            codes.append(code)

    # 22 clears both bold and dim, so whichever one stays has to be set again.
    if "22" in codes:
        added |= new & (Modifier.BOLD | Modifier.DIM)

    for modifier, code in SETTERS.items():
        if modifier & added:
            codes.append(code)

    return codes


@dataclass(frozen=True)
class Style:
    """A bundle of optional colors and text attributes.

    Styles are immutable; layering one style on another is done with `patch`.
    """

    foreground: Color | None = None
    background: Color | None = None
    modifiers: Modifier = Modifier.NONE

    def patch(self, other: Style) -> Style:
        """Returns this style overridden by every field `other` sets.

        Colors are overridden when `other` sets them, and `other`'s modifiers
        are added to ours.
        """

        return Style(
            foreground=(
                other.foreground if other.foreground is not None else self.foreground
            ),
            background=(
                other.background if other.background is not None else self.background
            ),
            modifiers=self.modifiers | other.modifiers,
        )

    def as_foreground(self, value: Color | None) -> Style:
        """Returns this style with the given foreground color."""

        return replace(self, foreground=value)

    def as_background(self, value: Color | None) -> Style:
        """Returns this style with the given background color."""

        return replace(self, background=value)

    def as_modifier(self, value: Modifier) -> Style:
        """Returns this style with the given modifiers added."""

        return replace(self, modifiers=self.modifiers | value)


class StyleStack:
    """An ordered set of style layers, the top of which is the effective style.

    Layers are pushed and popped in LIFO order. The base layer can never be
    popped.
    """

    def __init__(self, base: Style = Style()) -> None:
        self._layers: list[Style] = [base]
        self._effective: list[Style] = [base]

    def __len__(self) -> int:
        return len(self._layers)

    @property
    def depth(self) -> int:
        """Returns the number of layers pushed on top of the base."""

        return len(self._layers) - 1

    def push(self, style: Style) -> None:
        """Layers `style` over the current effective style."""

        self._layers.append(style)
        self._effective.append(self._effective[-1].patch(style))

    def pop(self) -> Style:
        """Removes the top layer and returns it.

        Raises:
            StackUnderflow: Only the base layer is left.
        """

        if len(self._layers) == 1:
            raise StackUnderflow("Cannot pop the base layer of a style stack.")

        self._effective.pop()
        return self._layers.pop()

    def effective(self) -> Style:
        """Returns every layer folded bottom-to-top."""

        return self._effective[-1]

    @contextmanager
    def scoped(self, style: Style) -> Generator[Style, None, None]:
        """Pushes a style for the duration of the context.

        The layer is popped however the context is left, and the effective
        style is yielded.
        """

        self.push(style)

        try:
            yield self.effective()

        finally:
            self.pop()

    def close(self) -> None:
        """Checks that every pushed layer was popped.

        Raises:
            UnbalancedStyles: Some layers are still pushed.
        """

        if self.depth:
            raise UnbalancedStyles(
                f"{self.depth} style layer(s) were pushed but never popped."
            )
