import pytest

from briks.core import MalformedSequence
from briks.decoder import Decoder, decode_ascii, decode_mouse, parse_csi
from briks.event import (
    Char,
    FunctionKey,
    KeyEvent,
    KeyModifiers,
    MouseButton,
    MouseEvent,
    MouseKind,
    NamedKey,
    PasteEvent,
)
from briks.terminal import MemoryTerminal


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def key(code, modifiers=KeyModifiers.NONE):
    if isinstance(code, str):
        code = Char(code)

    return KeyEvent(code, modifiers)


def test_decoder_ascii():
    decoder = Decoder()

    assert decoder.feed(b"a B?") == [key("a"), key(" "), key("B"), key("?")]
    assert decoder.feed(b"\r\n\t\x7f\x08\x00") == [
        key(NamedKey.ENTER),
        key(NamedKey.ENTER),
        key(NamedKey.TAB),
        key(NamedKey.BACKSPACE),
        key(NamedKey.BACKSPACE),
        key(NamedKey.NULL),
    ]


def test_decoder_ctrl_keys():
    assert decode_ascii(0x01) == key("a", KeyModifiers.CTRL)
    assert decode_ascii(0x03) == key("c", KeyModifiers.CTRL)
    assert decode_ascii(0x1A) == key("z", KeyModifiers.CTRL)
    assert decode_ascii(0x1C) == key("4", KeyModifiers.CTRL)


def test_decoder_utf8():
    decoder = Decoder()

    assert decoder.feed("é".encode("utf-8")) == [key("é")]
    assert decoder.feed("世🙂".encode("utf-8")) == [key("世"), key("🙂")]


def test_decoder_utf8_split_reads():
    decoder = Decoder()
    data = "🙂".encode("utf-8")

    assert decoder.feed(data[:1]) == []
    assert decoder.feed(data[1:3]) == []
    assert decoder.pending == data[:3]
    assert decoder.feed(data[3:]) == [key("🙂")]
    assert decoder.pending == b""


def test_decoder_invalid_utf8():
    decoder = Decoder()

    assert decoder.feed(b"\xffa") == [key("�"), key("a")]
    assert decoder.feed(b"\x80") == [key("�")]

    # The interrupting byte is decoded on its own.
    assert decoder.feed(b"\xc3a") == [key("�"), key("a")]

    assert decoder.feed(b"\xe4\xb8") == []
    assert decoder.flush() == [key("�")]


def test_decoder_csi_arrow():
    decoder = Decoder()

    assert decoder.feed(b"\x1b[A") == [key(NamedKey.UP)]
    assert decoder.feed(b"\x1b[B\x1b[C\x1b[D") == [
        key(NamedKey.DOWN),
        key(NamedKey.RIGHT),
        key(NamedKey.LEFT),
    ]


def test_decoder_csi_split_reads():
    decoder = Decoder()

    assert decoder.feed(b"\x1b") == []
    assert decoder.feed(b"[") == []
    assert decoder.feed(b"1;5") == []
    assert decoder.feed(b"A") == [key(NamedKey.UP, KeyModifiers.CTRL)]


def test_decoder_modifiers():
    decoder = Decoder()

    assert decoder.feed(b"\x1b[1;2C") == [key(NamedKey.RIGHT, KeyModifiers.SHIFT)]
    assert decoder.feed(b"\x1b[1;3H") == [key(NamedKey.HOME, KeyModifiers.ALT)]
    assert decoder.feed(b"\x1b[3;6~") == [
        key(NamedKey.DELETE, KeyModifiers.SHIFT | KeyModifiers.CTRL)
    ]
    assert decoder.feed(b"\x1b[Z") == [key(NamedKey.BACK_TAB, KeyModifiers.SHIFT)]


def test_decoder_alt_keys():
    decoder = Decoder()

    assert decoder.feed(b"\x1bx") == [key("x", KeyModifiers.ALT)]
    assert decoder.feed("\x1bé".encode("utf-8")) == [key("é", KeyModifiers.ALT)]
    assert decoder.feed(b"\x1b\x01") == [
        key("a", KeyModifiers.CTRL | KeyModifiers.ALT)
    ]


def test_decoder_tilde_keys():
    decoder = Decoder()

    assert decoder.feed(b"\x1b[2~\x1b[3~\x1b[5~\x1b[6~") == [
        key(NamedKey.INSERT),
        key(NamedKey.DELETE),
        key(NamedKey.PAGE_UP),
        key(NamedKey.PAGE_DOWN),
    ]
    assert decoder.feed(b"\x1b[1~\x1b[4~") == [key(NamedKey.HOME), key(NamedKey.END)]


def test_decoder_function_keys():
    decoder = Decoder()

    assert decoder.feed(b"\x1bOP\x1bOS") == [key(FunctionKey(1)), key(FunctionKey(4))]
    assert decoder.feed(b"\x1b[15~\x1b[17~\x1b[24~") == [
        key(FunctionKey(5)),
        key(FunctionKey(6)),
        key(FunctionKey(12)),
    ]
    assert decoder.feed(b"\x1b[1;5P") == [key(FunctionKey(1), KeyModifiers.CTRL)]


def test_decoder_ss3_keys():
    decoder = Decoder()

    assert decoder.feed(b"\x1bOA\x1bOH\x1bOM") == [
        key(NamedKey.UP),
        key(NamedKey.HOME),
        key(NamedKey.ENTER),
    ]


def test_decoder_lone_escape_flush():
    decoder = Decoder()

    assert decoder.feed(b"\x1b") == []
    assert decoder.pending == b"\x1b"
    assert decoder.flush() == [key(NamedKey.ESC)]
    assert decoder.pending == b""


def test_decoder_escape_timeout():
    clock = FakeClock()
    decoder = Decoder(escape_timeout=0.05, clock=clock)

    assert decoder.timeout() is None
    assert decoder.feed(b"\x1b") == []
    assert decoder.timeout() == pytest.approx(0.05)

    clock.now = 0.01
    assert decoder.expire() == []

    clock.now = 0.06
    assert decoder.timeout() == 0.0
    assert decoder.expire() == [key(NamedKey.ESC)]
    assert decoder.timeout() is None


def test_decoder_escape_sequence_within_timeout():
    clock = FakeClock()
    decoder = Decoder(escape_timeout=0.05, clock=clock)

    assert decoder.feed(b"\x1b") == []

    clock.now = 0.02
    assert decoder.feed(b"[A") == [key(NamedKey.UP)]


def test_decoder_double_escape():
    decoder = Decoder()

    assert decoder.feed(b"\x1b\x1b[A") == [key(NamedKey.ESC), key(NamedKey.UP)]


def test_decoder_flush_partial_introducers():
    decoder = Decoder()

    decoder.feed(b"\x1b[")
    assert decoder.flush() == [key("[", KeyModifiers.ALT)]

    decoder.feed(b"\x1bO")
    assert decoder.flush() == [key("O", KeyModifiers.ALT)]

    decoder.feed(b"\x1b[1;")
    assert decoder.flush() == []
    assert decoder.pending == b""


def test_decoder_poll_resolves_escape():
    terminal = MemoryTerminal()
    decoder = Decoder(escape_timeout=0.05, clock=FakeClock())

    terminal.feed(b"\x1b")
    terminal.pause()

    assert decoder.poll(terminal, 1.0) == []
    assert decoder.poll(terminal, 1.0) == [key(NamedKey.ESC)]


def test_decoder_poll_completes_sequence():
    terminal = MemoryTerminal()
    decoder = Decoder(escape_timeout=0.05, clock=FakeClock())

    terminal.feed(b"\x1b")
    terminal.feed(b"[B")

    assert decoder.poll(terminal, 1.0) == []
    assert decoder.poll(terminal, 1.0) == [key(NamedKey.DOWN)]


def test_decoder_poll_expired_escape_stays_separate():
    terminal = MemoryTerminal()
    clock = FakeClock()
    decoder = Decoder(escape_timeout=0.05, clock=clock)

    terminal.feed(b"\x1b")
    assert decoder.poll(terminal, 1.0) == []

    clock.now = 5.0
    terminal.feed(b"a")

    assert decoder.poll(terminal, 1.0) == [key(NamedKey.ESC), key("a")]
    assert decoder.pending == b""


def test_decoder_events():
    terminal = MemoryTerminal()
    terminal.feed("hé")
    terminal.feed(b"\x1b[A")

    events = Decoder().events(terminal)

    assert next(events) == key("h")
    assert next(events) == key("é")
    assert next(events) == key(NamedKey.UP)


def test_decoder_sgr_mouse():
    decoder = Decoder()

    assert decoder.feed(b"\x1b[<0;12;23M") == [
        MouseEvent(MouseKind.DOWN, MouseButton.LEFT, 11, 22)
    ]
    assert decoder.feed(b"\x1b[<2;45;8m") == [
        MouseEvent(MouseKind.UP, MouseButton.RIGHT, 44, 7)
    ]
    assert decoder.feed(b"\x1b[<32;5;6M") == [
        MouseEvent(MouseKind.DRAG, MouseButton.LEFT, 4, 5)
    ]
    assert decoder.feed(b"\x1b[<35;5;6M") == [
        MouseEvent(MouseKind.MOVE, MouseButton.NONE, 4, 5)
    ]
    assert decoder.feed(b"\x1b[<65;1;1M") == [
        MouseEvent(MouseKind.SCROLL_DOWN, MouseButton.NONE, 0, 0)
    ]
    assert decoder.feed(b"\x1b[<16;3;3M") == [
        MouseEvent(MouseKind.DOWN, MouseButton.LEFT, 2, 2, KeyModifiers.CTRL)
    ]


def test_decoder_x10_mouse():
    decoder = Decoder()

    assert decoder.feed(b"\x1b[M" + bytes([32, 33 + 10, 33 + 5])) == [
        MouseEvent(MouseKind.DOWN, MouseButton.LEFT, 10, 5)
    ]
    assert decoder.feed(b"\x1b[M" + bytes([35, 33, 33])) == [
        MouseEvent(MouseKind.UP, MouseButton.NONE, 0, 0)
    ]
    assert decoder.feed(b"\x1b[M" + bytes([96, 34])) == []
    assert decoder.feed(bytes([34])) == [
        MouseEvent(MouseKind.SCROLL_UP, MouseButton.NONE, 1, 1)
    ]


def test_decoder_decode_mouse():
    assert decode_mouse(1, 3, 4) == MouseEvent(MouseKind.DOWN, MouseButton.MIDDLE, 3, 4)
    assert decode_mouse(1, 3, 4, released=True) == MouseEvent(
        MouseKind.UP, MouseButton.MIDDLE, 3, 4
    )
    assert decode_mouse(66, 0, 0).kind is MouseKind.SCROLL_LEFT


def test_decoder_paste():
    decoder = Decoder()

    assert decoder.feed(b"\x1b[200~hello\x1b[201~") == [PasteEvent("hello")]


def test_decoder_paste_split_reads():
    clock = FakeClock()
    decoder = Decoder(escape_timeout=0.05, clock=clock)

    assert decoder.feed(b"\x1b[200~line\r\n\x1b[A") == []
    assert decoder.in_paste
    assert decoder.timeout() is None

    clock.now = 10.0
    assert decoder.expire() == []

    assert decoder.feed("é\x1b[201~x".encode("utf-8")) == [
        PasteEvent("line\r\n\x1b[Aé"),
        key("x"),
    ]
    assert not decoder.in_paste


def test_decoder_malformed_sequences_are_dropped():
    decoder = Decoder()

    assert decoder.feed(b"\x1b[99~a") == [key("a")]
    assert decoder.feed(b"\x1b[?5Xb") == [key("b")]
    assert decoder.feed(b"\x1b[<1;2Mc") == [key("c")]
    assert decoder.feed(b"\x1bOzd") == [key("d")]


def test_decoder_interrupted_sequence():
    decoder = Decoder()

    # A control byte can't be part of a CSI sequence.
    assert decoder.feed(b"\x1b[1\ra") == [key(NamedKey.ENTER), key("a")]


def test_decoder_parse_csi():
    assert parse_csi("1;5", "D") == key(NamedKey.LEFT, KeyModifiers.CTRL)
    assert parse_csi("", "F") == key(NamedKey.END)

    with pytest.raises(MalformedSequence):
        parse_csi("1;x", "A")

    with pytest.raises(MalformedSequence):
        parse_csi("42", "~")
