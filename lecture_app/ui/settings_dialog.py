"""Settings dialog for the auto-question timer."""

from __future__ import annotations

from PySide6.QtWidgets import (
    QCheckBox,
    QDialog,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
)

from lecture_app.constants.timer_constants import MAX_INTERVAL_MINUTES, MIN_INTERVAL_MINUTES


class SettingsDialog(QDialog):
    """Dialog for configuring the auto-question interval and display."""

    def __init__(
        self,
        parent=None,
        interval_minutes: int = 15,
        auto_question_enabled: bool = True,
        ui_font_size: int = 10,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Settings")
        self.setModal(True)
        self.setMinimumWidth(400)

        self._interval_minutes = max(MIN_INTERVAL_MINUTES, min(MAX_INTERVAL_MINUTES, interval_minutes))
        self._auto_question_enabled = auto_question_enabled
        self._ui_font_size = ui_font_size

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        timer_group = QGroupBox("Auto-Questions")
        timer_layout = QVBoxLayout()
        timer_group.setLayout(timer_layout)

        self.auto_question_checkbox = QCheckBox("Send a queued check-in question every interval")
        self.auto_question_checkbox.setChecked(self._auto_question_enabled)
        timer_layout.addWidget(self.auto_question_checkbox)

        interval_row = QHBoxLayout()
        interval_label = QLabel("Interval:")
        interval_label.setToolTip("Students see a countdown to the next question while recording")
        self.interval_spinbox = QSpinBox()
        self.interval_spinbox.setRange(MIN_INTERVAL_MINUTES, MAX_INTERVAL_MINUTES)
        self.interval_spinbox.setValue(self._interval_minutes)
        self.interval_spinbox.setSuffix(" min")
        interval_row.addWidget(interval_label)
        interval_row.addStretch()
        interval_row.addWidget(self.interval_spinbox)
        timer_layout.addLayout(interval_row)

        layout.addWidget(timer_group)

        display_group = QGroupBox("Display")
        display_layout = QHBoxLayout()
        display_group.setLayout(display_layout)
        font_label = QLabel("UI Font Size:")
        self.ui_font_spinbox = QSpinBox()
        self.ui_font_spinbox.setRange(8, 24)
        self.ui_font_spinbox.setValue(self._ui_font_size)
        self.ui_font_spinbox.setSuffix(" pt")
        display_layout.addWidget(font_label)
        display_layout.addStretch()
        display_layout.addWidget(self.ui_font_spinbox)
        layout.addWidget(display_group)

        button_row = QHBoxLayout()
        button_row.addStretch()

        self.cancel_button = QPushButton("Cancel")
        self.cancel_button.clicked.connect(self.reject)  # type: ignore[arg-type]
        button_row.addWidget(self.cancel_button)

        self.apply_button = QPushButton("Apply")
        self.apply_button.clicked.connect(self.accept)  # type: ignore[arg-type]
        self.apply_button.setDefault(True)
        button_row.addWidget(self.apply_button)

        layout.addLayout(button_row)

    def get_interval_minutes(self) -> int:
        return self.interval_spinbox.value()

    def get_auto_question_enabled(self) -> bool:
        return self.auto_question_checkbox.isChecked()

    def get_ui_font_size(self) -> int:
        return self.ui_font_spinbox.value()
