"""Always-on-top compact window mirroring the presenter's timer."""

from __future__ import annotations

from typing import Callable

from PySide6.QtCore import Qt
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import QFrame, QHBoxLayout, QLabel, QProgressBar, QVBoxLayout, QWidget

from lecture_app.constants.ui_constants import (
    COUNTDOWN_IDLE_TEXT,
    PIP_LAST_SENT_LABEL,
    PIP_PAUSED_LABEL,
    PIP_RECORDING_LABEL,
    PIP_WINDOW_TITLE,
    STUDENT_COUNT_TEMPLATE,
)
from lecture_app.core.services.pip_mirror import PipMirror
from lecture_app.styling.color_palette import ColorPalette, Theme, correctness_color, urgency_color
from lecture_app.styling.styles import Styles


class PipWindow(QWidget):
    """Renders a :class:`PipMirror`; the mirror is released when the window closes."""

    def __init__(
        self,
        mirror: PipMirror,
        on_close: Callable[[PipMirror], None],
        theme: Theme = Theme.DARK,
    ) -> None:
        super().__init__(None, Qt.WindowType.Tool | Qt.WindowType.WindowStaysOnTopHint)
        self.setWindowTitle(PIP_WINDOW_TITLE)
        self.setMinimumWidth(280)
        self._mirror = mirror
        self._on_close = on_close
        self._theme = theme

        self._build_ui()
        self.setStyleSheet(Styles.get_pip_style(theme))
        self._remove_listener = mirror.add_listener(self.refresh)
        self.refresh()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        header = QHBoxLayout()
        self.status_label = QLabel(PIP_PAUSED_LABEL)
        self.duration_label = QLabel("0:00")
        header.addWidget(self.status_label)
        header.addStretch()
        header.addWidget(self.duration_label)
        layout.addLayout(header)

        self.countdown_frame = QFrame()
        countdown_layout = QVBoxLayout()
        self.countdown_frame.setLayout(countdown_layout)
        self.countdown_label = QLabel(COUNTDOWN_IDLE_TEXT)
        self.countdown_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        countdown_layout.addWidget(self.countdown_label)
        self.minute_bar = QProgressBar()
        self.minute_bar.setRange(0, 100)
        self.minute_bar.setTextVisible(False)
        self.minute_bar.setFixedHeight(6)
        countdown_layout.addWidget(self.minute_bar)
        layout.addWidget(self.countdown_frame)

        footer = QHBoxLayout()
        self.students_label = QLabel()
        self.correct_label = QLabel()
        footer.addWidget(self.students_label)
        footer.addStretch()
        footer.addWidget(self.correct_label)
        layout.addLayout(footer)

        self.last_question_label = QLabel()
        self.last_question_label.setWordWrap(True)
        layout.addWidget(self.last_question_label)

    def refresh(self) -> None:
        mirror = self._mirror
        theme = self._theme
        if mirror.is_recording:
            self.status_label.setText(f"● {PIP_RECORDING_LABEL}")
            self.status_label.setStyleSheet(f"color: {ColorPalette.RECORDING.get(theme)}; font-weight: bold;")
        else:
            self.status_label.setText(PIP_PAUSED_LABEL)
            self.status_label.setStyleSheet(f"color: {ColorPalette.TEXT_SECONDARY.get(theme)};")
        self.duration_label.setText(mirror.duration_text)

        if mirror.countdown_visible and mirror.countdown > 0:
            self.countdown_label.setText(mirror.display_text)
            color = urgency_color(mirror.urgency, theme)
        else:
            self.countdown_label.setText(COUNTDOWN_IDLE_TEXT)
            color = ColorPalette.TEXT_SECONDARY.get(theme)
        self.countdown_label.setStyleSheet(Styles.get_countdown_style(color, point_size=28))
        self.minute_bar.setValue(int(mirror.minute_bar_percent) if mirror.countdown_visible else 0)
        self.countdown_frame.setStyleSheet(
            Styles.get_flash_border_style(ColorPalette.FLASH.get(theme)) if mirror.flash else ""
        )

        self.students_label.setText(STUDENT_COUNT_TEMPLATE.format(count=mirror.student_count))
        if mirror.correct_percentage is None:
            self.correct_label.setText("")
        else:
            self.correct_label.setText(f"{mirror.correct_percentage:.0f}% correct")
            self.correct_label.setStyleSheet(f"color: {correctness_color(mirror.correctness, theme)};")
        if mirror.last_question:
            self.last_question_label.setText(f"{PIP_LAST_SENT_LABEL}: {mirror.last_question}")
        else:
            self.last_question_label.setText("")

    def closeEvent(self, event: QCloseEvent) -> None:
        self._remove_listener()
        self._on_close(self._mirror)
        super().closeEvent(event)
