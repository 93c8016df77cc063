"""User interface events."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import ClassVar, Optional


class ButtonState(enum.Enum):
    """The state of a button."""

    PRESSED = "pressed"
    RELEASED = "released"


_NAMED_BUTTONS = ("left", "right", "middle")


@dataclass(frozen=True)
class MouseButton:
    """A mouse button: left, right, middle, or another one identified by a 16-bit code."""

    name: str
    code: Optional[int] = None

    LEFT: ClassVar["MouseButton"]
    RIGHT: ClassVar["MouseButton"]
    MIDDLE: ClassVar["MouseButton"]

    def __post_init__(self) -> None:
        if self.name in _NAMED_BUTTONS:
            if self.code is not None:
                raise ValueError(f"the {self.name} button takes no code")
        elif self.name == "other":
            if self.code is None or not 0 <= self.code <= 0xFFFF:
                raise ValueError("other buttons need a code between 0 and 65535")
        else:
            raise ValueError(f"unknown mouse button {self.name!r}")

    @classmethod
    def other(cls, code: int) -> "MouseButton":
        """A button other than left, right and middle."""
        return cls("other", code)


MouseButton.LEFT = MouseButton("left")
MouseButton.RIGHT = MouseButton("right")
MouseButton.MIDDLE = MouseButton("middle")


@dataclass(frozen=True)
class MouseInput:
    """A change in the state of a mouse button."""

    state: ButtonState
    button: MouseButton


Event = MouseInput