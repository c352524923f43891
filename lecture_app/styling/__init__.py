"""Styling module for the LectureSync presenter."""

from .color_palette import ColorPalette, Theme, correctness_color, urgency_color

__all__ = ["ColorPalette", "Theme", "correctness_color", "urgency_color"]
