"""Sizes and positions in logical pixels."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Size:
    """Some size."""

    width: float
    height: float


@dataclass(frozen=True)
class Position:
    """Some position."""

    x: float = 0.0
    y: float = 0.0