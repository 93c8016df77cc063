"""Networking and UI primitives for a voxel game."""

__version__ = "0.1.0"