from __future__ import annotations

from enum import Enum

from briks import (
    Application,
    Char,
    Command,
    Event,
    Frame,
    KeyEvent,
    KeyModifiers,
    Modifier,
    RgbColor,
    Style,
    run,
)

HINT = Style(foreground=RgbColor(128, 128, 128))


class Action(Enum):
    INCREMENT = "increment"
    DECREMENT = "decrement"
    QUIT = "quit"


KEYS = {
    KeyEvent(Char("+")): Action.INCREMENT,
    KeyEvent(Char("=")): Action.INCREMENT,
    KeyEvent(Char("-")): Action.DECREMENT,
    KeyEvent(Char("q")): Action.QUIT,
    KeyEvent(Char("c"), KeyModifiers.CTRL): Action.QUIT,
}


class Counter(Application[Action]):
    def __init__(self) -> None:
        self.count = 0

    def on_event(self, event: Event) -> Action | None:
        return KEYS.get(event)

    def update(self, action: Action) -> Command:
        if action is Action.QUIT:
            return Command.QUIT

        self.count += 1 if action is Action.INCREMENT else -1
        return Command.NONE

    def draw(self, frame: Frame) -> None:
        with frame.styled(Style(modifiers=Modifier.BOLD)):
            frame.write_str(0, 0, f"Count: {self.count}")

        with frame.styled(HINT):
            frame.write_str(0, 1, "+/- to change, q to quit")


def main() -> None:
    run(Counter())


if __name__ == "__main__":
    main()
