"""Color palette for the presenter and PiP windows, light and dark."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from lecture_app.core.urgency import CorrectnessTier, UrgencyLevel


class Theme(Enum):
    """Application theme options."""
    LIGHT = auto()
    DARK = auto()


@dataclass(frozen=True)
class ThemeColors:
    """Color definitions for a specific theme."""
    light: str
    dark: str

    def get(self, theme: Theme) -> str:
        return self.light if theme == Theme.LIGHT else self.dark


class ColorPalette:
    """Centralized color definitions for the application."""

    TEXT_PRIMARY = ThemeColors(light="#000000", dark="#F5F5F5")
    TEXT_SECONDARY = ThemeColors(light="#666666", dark="#AAAAAA")

    BACKGROUND_PRIMARY = ThemeColors(light="#FFFFFF", dark="#1E1E1E")
    BACKGROUND_SECONDARY = ThemeColors(light="#F5F5F5", dark="#2D2D2D")

    BORDER_PRIMARY = ThemeColors(light="#D1D1D1", dark="#555555")

    BUTTON_PRIMARY_BG = ThemeColors(light="#0078D4", dark="#4A9EFF")
    BUTTON_PRIMARY_TEXT = ThemeColors(light="#FFFFFF", dark="#000000")
    BUTTON_SECONDARY_BG = ThemeColors(light="#F5F5F5", dark="#3A3A3A")
    BUTTON_HOVER_BG = ThemeColors(light="#E8E8E8", dark="#505050")

    # Countdown urgency
    URGENCY_CALM = ThemeColors(
        light="#0078D4",      # Blue
        dark="#4A9EFF"
    )
    URGENCY_WARNING = ThemeColors(
        light="#D97706",      # Amber
        dark="#FFC83D"
    )
    URGENCY_CRITICAL = ThemeColors(
        light="#D13438",      # Red
        dark="#FF6B6B"
    )

    RECORDING = ThemeColors(light="#D13438", dark="#FF6B6B")
    FLASH = ThemeColors(light="#107C10", dark="#6FCF6F")

    # Share of correct answers
    CORRECT_GOOD = ThemeColors(light="#107C10", dark="#6FCF6F")
    CORRECT_FAIR = ThemeColors(light="#D97706", dark="#FFC83D")
    CORRECT_POOR = ThemeColors(light="#D13438", dark="#FF6B6B")


_URGENCY_COLORS = {
    UrgencyLevel.CALM: ColorPalette.URGENCY_CALM,
    UrgencyLevel.WARNING: ColorPalette.URGENCY_WARNING,
    UrgencyLevel.CRITICAL: ColorPalette.URGENCY_CRITICAL,
}

_CORRECTNESS_COLORS = {
    CorrectnessTier.UNKNOWN: ColorPalette.TEXT_SECONDARY,
    CorrectnessTier.GOOD: ColorPalette.CORRECT_GOOD,
    CorrectnessTier.FAIR: ColorPalette.CORRECT_FAIR,
    CorrectnessTier.POOR: ColorPalette.CORRECT_POOR,
}


def urgency_color(level: UrgencyLevel, theme: Theme = Theme.LIGHT) -> str:
    return _URGENCY_COLORS[level].get(theme)


def correctness_color(tier: CorrectnessTier, theme: Theme = Theme.LIGHT) -> str:
    return _CORRECTNESS_COLORS[tier].get(theme)
