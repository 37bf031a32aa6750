import os
from argparse import ArgumentParser

from . import (
    Char,
    Decoder,
    KeyEvent,
    KeyModifiers,
    Modifier,
    NamedColor,
    Style,
    TTYTerminal,
    configure_logging,
    encode_color,
    get_color_space,
    get_escape_timeout,
    session,
)
from .__about__ import __version__
from .style import modifier_codes

QUIT_KEYS = (
    KeyEvent(Char("q")),
    KeyEvent(Char("c"), KeyModifiers.CTRL),
)


def _styled(text: str, style: Style) -> str:
    codes = modifier_codes(Modifier.NONE, style.modifiers)

    if style.foreground is not None:
        codes.append(encode_color(style.foreground, False, get_color_space()))

    if not codes:
        return text

    return f"\x1b[{';'.join(codes)}m{text}\x1b[0m"


def run_keys(mouse: bool) -> None:
    print(_styled("Press q or ctrl-c to quit.", Style(modifiers=Modifier.DIM)))

    decoder = Decoder()

    with TTYTerminal() as terminal, session(terminal, mouse=mouse, paste=True):
        for event in decoder.events(terminal):
            terminal.write(f"{event!r}\r\n".encode("utf-8"))

            if event in QUIT_KEYS:
                break


def run_size(**_: object) -> None:
    with TTYTerminal() as terminal:
        print(" x ".join(map(str, terminal.size())))


def run_debug(**_: object) -> None:
    rows = [
        ("Environment:", ""),
        ("$TERM", os.getenv("TERM", "-")),
        ("$COLORTERM", os.getenv("COLORTERM", "-")),
        ("$NO_COLOR", os.getenv("NO_COLOR", "-")),
        ("$BRIKS_COLORSYS", os.getenv("BRIKS_COLORSYS", "-")),
        ("$BRIKS_ESCAPE_TIMEOUT", os.getenv("BRIKS_ESCAPE_TIMEOUT", "-")),
        ("$BRIKS_LOG", os.getenv("BRIKS_LOG", "-")),
        ("Detected:", ""),
        ("colorspace", get_color_space().value),
        ("escape timeout", f"{get_escape_timeout() * 1000:g}ms"),
    ]

    max_left = max(len(row[0]) for row in rows) + 3
    max_right = max(len(row[1]) for row in rows) + 3

    buff = ""

    for left, right in rows:
        if right == "":
            if buff:
                buff += "\n"

            buff += _styled(left, Style(modifiers=Modifier.BOLD)) + "\n"
            continue

        buff += _styled(f"{left:<{max_left}}", Style(modifiers=Modifier.DIM))
        buff += _styled(f"{right:>{max_right}}", Style(NamedColor.CYAN))
        buff += "\n"

    print(buff.lstrip("\n"))


def main() -> None:
    """The main entrypoint."""

    parser = ArgumentParser("briks", description="Small tools for the terminal.")
    parser.add_argument("-v", "--version", action="version", version=__version__)
    parser.add_argument("--log", metavar="FILE", help="Write debug logs to FILE.")

    subs = parser.add_subparsers(required=True)

    keys_command = subs.add_parser("keys", help="Print decoded input events.")
    keys_command.set_defaults(func=run_keys)
    keys_command.add_argument("--mouse", action="store_true")

    subs.add_parser("size", help="Print the terminal's size.").set_defaults(
        func=run_size
    )
    subs.add_parser("debug", help="Print the detected configuration.").set_defaults(
        func=run_debug
    )

    args = parser.parse_args()

    opts = vars(args)
    command = opts.pop("func")
    log = opts.pop("log")

    if log is not None:
        configure_logging(log)

    print()
    command(**opts)
    print()


if __name__ == "__main__":
    main()
