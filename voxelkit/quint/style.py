"""Flexbox style of a widget, built by chaining methods."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import ClassVar


class FlexWrap(enum.Enum):
    """Whether children wrap along the main axis."""

    NO_WRAP = "no_wrap"
    WRAP = "wrap"
    WRAP_REVERSE = "wrap_reverse"


class FlexDirection(enum.Enum):
    """Direction of the main axis."""

    ROW = "row"
    COLUMN = "column"
    ROW_REVERSE = "row_reverse"
    COLUMN_REVERSE = "column_reverse"


class AlignItems(enum.Enum):
    """Placement of children on the cross axis."""

    FLEX_START = "flex_start"
    FLEX_END = "flex_end"
    CENTER = "center"
    BASELINE = "baseline"
    STRETCH = "stretch"


class JustifyContent(enum.Enum):
    """Placement of children on the main axis."""

    FLEX_START = "flex_start"
    FLEX_END = "flex_end"
    CENTER = "center"
    SPACE_BETWEEN = "space_between"
    SPACE_AROUND = "space_around"
    SPACE_EVENLY = "space_evenly"


@dataclass(frozen=True)
class Dimension:
    """A length: undefined, automatic, in logical pixels, or relative to the parent."""

    kind: str
    value: float = 0.0

    KINDS: ClassVar[tuple] = ("undefined", "auto", "points", "percent")

    def __post_init__(self) -> None:
        if self.kind not in self.KINDS:
            raise ValueError(f"unknown dimension kind {self.kind!r}")

    @classmethod
    def undefined(cls) -> "Dimension":
        return cls("undefined")

    @classmethod
    def auto(cls) -> "Dimension":
        return cls("auto")

    @classmethod
    def points(cls, value: float) -> "Dimension":
        """A length in logical pixels."""
        return cls("points", value)

    @classmethod
    def percent(cls, value: float) -> "Dimension":
        """A fraction of the parent's length, from 0.0 to 1.0."""
        return cls("percent", value)


@dataclass(frozen=True)
class Style:
    """Style of a widget. Every method returns a new style."""

    flex_wrap: FlexWrap = FlexWrap.NO_WRAP
    flex_direction: FlexDirection = FlexDirection.ROW
    align_items: AlignItems = AlignItems.STRETCH
    justify_content: JustifyContent = JustifyContent.FLEX_START
    width: Dimension = field(default_factory=Dimension.auto)
    height: Dimension = field(default_factory=Dimension.auto)

    def wrap(self) -> "Style":
        """Wrap along the main direction."""
        return replace(self, flex_wrap=FlexWrap.WRAP)

    def vertical(self) -> "Style":
        """Lay children out in a column."""
        return replace(self, flex_direction=FlexDirection.COLUMN)

    def center_cross(self) -> "Style":
        """Center the cross axis."""
        return replace(self, align_items=AlignItems.CENTER)

    def center_main(self) -> "Style":
        """Center the main axis by spacing around."""
        return replace(self, justify_content=JustifyContent.SPACE_AROUND)

    def space_between(self) -> "Style":
        """Spread the main axis by spacing between."""
        return replace(self, justify_content=JustifyContent.SPACE_BETWEEN)

    def percent_width(self, width: float) -> "Style":
        """Width relative to the parent, from 0.0 to 1.0."""
        return replace(self, width=Dimension.percent(width))

    def percent_height(self, height: float) -> "Style":
        """Height relative to the parent, from 0.0 to 1.0."""
        return replace(self, height=Dimension.percent(height))

    def percent_size(self, width: float, height: float) -> "Style":
        """Size relative to the parent, from 0.0 to 1.0."""
        return self.percent_width(width).percent_height(height)

    def absolute_width(self, width: float) -> "Style":
        """Width in logical pixels."""
        return replace(self, width=Dimension.points(width))

    def absolute_height(self, height: float) -> "Style":
        """Height in logical pixels."""
        return replace(self, height=Dimension.points(height))

    def absolute_size(self, width: float, height: float) -> "Style":
        """Size in logical pixels."""
        return self.absolute_width(width).absolute_height(height)