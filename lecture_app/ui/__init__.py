"""Qt UI components for the presenter application."""

from .dialog_helpers import confirm_stop_recording, show_error, show_info, show_warning
from .pip_window import PipWindow
from .presenter_window import PresenterWindow
from .qt_scheduling import QtScheduler

__all__ = [
    "PipWindow",
    "PresenterWindow",
    "QtScheduler",
    "confirm_stop_recording",
    "show_error",
    "show_info",
    "show_warning",
]
