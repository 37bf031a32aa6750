import pytest

from briks.color import NamedColor
from briks.core import StackUnderflow, UnbalancedStyles
from briks.style import Modifier, Style, StyleStack, modifier_codes


def test_style_patch():
    base = Style(NamedColor.RED, NamedColor.BLACK, Modifier.ITALIC)
    layer = Style(foreground=NamedColor.CYAN, modifiers=Modifier.BOLD)

    assert base.patch(layer) == Style(
        NamedColor.CYAN, NamedColor.BLACK, Modifier.ITALIC | Modifier.BOLD
    )
    assert base.patch(Style()) == base


def test_style_helpers():
    style = Style().as_foreground(NamedColor.RED).as_modifier(Modifier.BOLD)

    assert style == Style(foreground=NamedColor.RED, modifiers=Modifier.BOLD)
    assert style.as_background(NamedColor.BLUE).background == NamedColor.BLUE


def test_style_stack_merge():
    stack = StyleStack()

    stack.push(Style(foreground=NamedColor.CYAN))
    stack.push(Style(modifiers=Modifier.BOLD))

    assert stack.effective() == Style(
        foreground=NamedColor.CYAN, modifiers=Modifier.BOLD
    )
    assert stack.depth == 2

    assert stack.pop() == Style(modifiers=Modifier.BOLD)
    assert stack.effective() == Style(foreground=NamedColor.CYAN)


def test_style_stack_underflow():
    stack = StyleStack(Style(foreground=NamedColor.RED))

    with pytest.raises(StackUnderflow):
        stack.pop()

    assert stack.effective() == Style(foreground=NamedColor.RED)
    assert len(stack) == 1


def test_style_stack_scoped_pops_on_error():
    stack = StyleStack()

    with pytest.raises(KeyError):
        with stack.scoped(Style(modifiers=Modifier.DIM)) as effective:
            assert effective.modifiers == Modifier.DIM
            raise KeyError("boom")

    assert stack.depth == 0
    assert stack.effective() == Style()


def test_style_stack_close():
    stack = StyleStack()
    stack.close()

    stack.push(Style(modifiers=Modifier.BOLD))

    with pytest.raises(UnbalancedStyles):
        stack.close()


def test_style_modifier_codes():
    assert modifier_codes(Modifier.NONE, Modifier.NONE) == []
    assert modifier_codes(Modifier.NONE, Modifier.BOLD | Modifier.UNDERLINE) == [
        "1",
        "4",
    ]
    assert modifier_codes(Modifier.ITALIC, Modifier.NONE) == ["23"]

    # Dropping bold also drops dim, which has to come back.
    assert modifier_codes(Modifier.BOLD | Modifier.DIM, Modifier.DIM) == ["22", "2"]
    assert modifier_codes(Modifier.BOLD | Modifier.DIM, Modifier.NONE) == ["22"]
