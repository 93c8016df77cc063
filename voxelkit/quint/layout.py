"""The computed placement of a widget."""

from __future__ import annotations

from dataclasses import dataclass

from .geometry import Position


@dataclass(frozen=True)
class Layout:
    """The computed layout of a widget."""

    x: float
    y: float
    width: float
    height: float

    def is_position_inside(self, p: Position) -> bool:
        """Check if a position is inside this layout, borders included."""
        return (
            self.x <= p.x <= self.x + self.width
            and self.y <= p.y <= self.y + self.height
        )

    def with_padding(self, padding_pixels: float) -> "Layout":
        """Shrink this layout by some logical pixels on every side."""
        return Layout(
            x=self.x + padding_pixels,
            y=self.y + padding_pixels,
            width=self.width - 2.0 * padding_pixels,
            height=self.height - 2.0 * padding_pixels,
        )