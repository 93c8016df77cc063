"""Geometry, layout, mouse event and style primitives for user interfaces."""