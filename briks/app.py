"""The Application interface, and the Runtime loop that drives it."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Generic, TypeVar

from .decoder import Decoder
from .event import Event, ResizeEvent
from .frame import Frame
from .screen import Renderer
from .terminal import Terminal, TTYTerminal, session

__all__ = [
    "Command",
    "Application",
    "LoopState",
    "Runtime",
    "run",
]

logger = logging.getLogger(__name__)

ActionT = TypeVar("ActionT")

DEFAULT_TICK = 0.25


class Command(Enum):
    """What the runtime should do after an update."""

    NONE = "none"
    QUIT = "quit"


class Application(Generic[ActionT]):
    """The base class of everything the runtime can run.

    Events are first turned into actions by `on_event`, which are then applied
    to the application's state by `update`. `draw` renders that state, and is
    called with a fresh frame after every batch of input.
    """

    def init(self) -> Command:
        """Called once, after the terminal is set up and before the first draw."""

        return Command.NONE

    def on_event(self, event: Event) -> ActionT | None:
        """Maps an input event to an action, or None to ignore it."""

        return None

    def update(self, action: ActionT) -> Command:
        """Applies an action to the application's state."""

        return Command.NONE

    def draw(self, frame: Frame) -> None:
        """Draws the current state. Every pushed style must be popped again."""


class LoopState(Enum):
    """The lifecycle of a `Runtime`."""

    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class Runtime(Generic[ActionT]):
    """Connects an application to a terminal.

    Args:
        app: The application to run.
        terminal: The terminal to run it on. It is not closed by the runtime.
        decoder: The input decoder, a new one by default.
        renderer: The renderer, a new one writing to `terminal` by default.
        tick: The longest time (in seconds) to wait for input before checking
            the terminal's size again.
        alt_screen: Run on the alternate screen buffer.
        mouse: Report mouse events.
        paste: Report pastes as single `PasteEvent`s.
        handle_signals: Unwind the loop on SIGTERM & SIGHUP.
    """

    def __init__(
        self,
        app: Application[ActionT],
        terminal: Terminal,
        *,
        decoder: Decoder | None = None,
        renderer: Renderer | None = None,
        tick: float = DEFAULT_TICK,
        alt_screen: bool = True,
        mouse: bool = False,
        paste: bool = True,
        handle_signals: bool = True,
    ) -> None:
        self.app = app
        self.terminal = terminal
        self.decoder = decoder or Decoder()
        self.renderer = renderer or Renderer(terminal)
        self.tick = tick

        self._session_options = {
            "alt_screen": alt_screen,
            "mouse": mouse,
            "paste": paste,
            "handle_signals": handle_signals,
        }

        self._state = LoopState.STARTING
        self._size = (0, 0)

    @property
    def state(self) -> LoopState:
        return self._state

    def _set_state(self, state: LoopState) -> None:
        if state is self._state:
            return

        logger.debug("runtime %s -> %s", self._state.value, state.value)
        self._state = state

    def run(self) -> None:
        """Runs the application until it quits.

        The terminal is restored however the loop ends. Errors raised by the
        application or the terminal are re-raised afterwards.
        """

        self._set_state(LoopState.STARTING)

        try:
            with session(self.terminal, **self._session_options):
                if self.app.init() is Command.QUIT:
                    self._set_state(LoopState.STOPPING)
                    return

                self._set_state(LoopState.RUNNING)

                self._size = self.terminal.size()
                self.draw()

                while self._state is LoopState.RUNNING:
                    self._step()

                self._set_state(LoopState.STOPPING)

        except Exception:
            logger.exception("runtime stopped by an error")
            raise

        finally:
            self._set_state(LoopState.STOPPED)

    def _step(self) -> None:
        """Waits for one batch of events, dispatches them and redraws."""

        events = self.decoder.poll(self.terminal, self.tick)

        size = self.terminal.size()

        if size != self._size:
            self._size = size
            events.insert(0, ResizeEvent(*size))

        if not events:
            return

        for event in events:
            if self.dispatch(event) is Command.QUIT:
                self._set_state(LoopState.STOPPING)
                return

        self.draw()

    def dispatch(self, event: Event) -> Command:
        """Passes an event through the application's `on_event` & `update`."""

        action = self.app.on_event(event)

        if action is None:
            return Command.NONE

        return self.app.update(action)

    def draw(self) -> int:
        """Draws the application into a fresh frame and renders it.

        Returns:
            The number of bytes written to the terminal.
        """

        frame = Frame(*self._size)

        self.app.draw(frame)
        frame.styles.close()

        return self.renderer.render(frame.buffer)


def run(
    app: Application[Any], terminal: Terminal | None = None, **options: Any
) -> None:
    """Runs an application on the given terminal, or on `/dev/tty`.

    Args:
        app: The application to run.
        terminal: The terminal to use. When omitted, `/dev/tty` is opened, and
            closed once the application quits.
        **options: Passed to `Runtime`.
    """

    if terminal is not None:
        Runtime(app, terminal, **options).run()
        return

    with TTYTerminal() as tty:
        Runtime(app, tty, **options).run()
