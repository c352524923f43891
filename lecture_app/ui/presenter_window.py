"""Qt main window for the instructor: recording, auto-question timer and question queue."""

from __future__ import annotations

from PySide6.QtCore import QTimer
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QCheckBox,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QMainWindow,
    QPlainTextEdit,
    QProgressBar,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from lecture_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION, HELP_TEXT
from lecture_app.constants.timer_constants import MAX_INTERVAL_MINUTES, MIN_INTERVAL_MINUTES
from lecture_app.constants.ui_constants import (
    AUDIENCE_REFRESH_INTERVAL_MS,
    BUTTON_ENQUEUE,
    BUTTON_OPEN_PIP,
    BUTTON_SEND_NOW,
    BUTTON_SHARE_RESULTS,
    BUTTON_START_RECORDING,
    BUTTON_STOP_RECORDING,
    CHECKBOX_AUTO_QUESTION,
    COUNTDOWN_IDLE_TEXT,
    NEXT_QUESTION_LABEL,
    PLACEHOLDER_QUESTION,
    QUEUE_COUNT_TEMPLATE,
    QUEUE_EMPTY_MESSAGE,
    STUDENT_COUNT_TEMPLATE,
    STUDENT_URL_PLACEHOLDER,
    WINDOW_TITLE,
)
from lecture_app.core.lecture_manager import LectureManager
from lecture_app.core.services.pip_mirror import PipMirror
from lecture_app.styling.color_palette import ColorPalette, Theme, urgency_color
from lecture_app.styling.styles import Styles
from lecture_app.ui.dialog_helpers import confirm_stop_recording, show_error, show_info, show_warning
from lecture_app.ui.pip_window import PipWindow
from lecture_app.ui.settings_dialog import SettingsDialog


class PresenterWindow(QMainWindow):
    """Main Qt window driving one lecture session."""

    def __init__(self, lecture_manager: LectureManager, student_url: str | None = None) -> None:
        super().__init__()
        self.setWindowTitle(WINDOW_TITLE)

        self.lecture_manager = lecture_manager
        self.student_url = student_url or STUDENT_URL_PLACEHOLDER
        self._ui_font_size: int = 10
        self._pip_window: PipWindow | None = None

        # The window renders the same presenter-topic feed the PiP uses.
        self._view = lecture_manager.open_pip_mirror()

        self._build_ui()
        self._view.add_listener(self._refresh_timer_view)
        self._configure_refresh_timer()
        self._apply_styles()
        self._refresh_timer_view()
        self._refresh_queue()

    def _build_ui(self) -> None:
        central_widget = QWidget(self)
        self.setCentralWidget(central_widget)
        root_layout = QVBoxLayout()
        central_widget.setLayout(root_layout)

        self._build_button_row(root_layout)

        self.student_url_label = QLabel(f"Students follow along at {self.student_url}")
        self.student_url_label.setStyleSheet(Styles.get_large_label_style())
        root_layout.addWidget(self.student_url_label)

        self._build_timer_group(root_layout)
        self._build_queue_group(root_layout)
        self._build_results_group(root_layout)

    def _build_button_row(self, layout: QVBoxLayout) -> None:
        button_row = QHBoxLayout()

        self.record_button = QPushButton(BUTTON_START_RECORDING, self)
        self.record_button.setCheckable(True)
        self.record_button.clicked.connect(self._handle_record_button)
        button_row.addWidget(self.record_button)

        self.pip_button = QPushButton(BUTTON_OPEN_PIP, self)
        self.pip_button.clicked.connect(self._handle_open_pip)
        button_row.addWidget(self.pip_button)

        button_row.addStretch()

        self.about_button = QPushButton(f"About {APP_NAME}", self)
        self.about_button.clicked.connect(self._handle_about)
        button_row.addWidget(self.about_button)

        self.help_button = QPushButton("Help", self)
        self.help_button.clicked.connect(self._handle_help)
        button_row.addWidget(self.help_button)

        self.settings_button = QPushButton("Settings", self)
        self.settings_button.clicked.connect(self._handle_settings)
        button_row.addWidget(self.settings_button)

        layout.addLayout(button_row)

    def _build_timer_group(self, layout: QVBoxLayout) -> None:
        group = QGroupBox(NEXT_QUESTION_LABEL)
        group_layout = QVBoxLayout()
        group.setLayout(group_layout)

        self.countdown_label = QLabel(COUNTDOWN_IDLE_TEXT)
        group_layout.addWidget(self.countdown_label)

        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 100)
        self.progress_bar.setTextVisible(False)
        group_layout.addWidget(self.progress_bar)

        info_row = QHBoxLayout()
        self.duration_label = QLabel("0:00")
        self.students_label = QLabel(STUDENT_COUNT_TEMPLATE.format(count=0))
        info_row.addWidget(self.duration_label)
        info_row.addStretch()
        info_row.addWidget(self.students_label)
        group_layout.addLayout(info_row)

        controls_row = QHBoxLayout()
        self.auto_question_checkbox = QCheckBox(CHECKBOX_AUTO_QUESTION)
        self.auto_question_checkbox.setChecked(self.lecture_manager.get_state().auto_question_enabled)
        self.auto_question_checkbox.toggled.connect(self._handle_auto_question_toggled)
        controls_row.addWidget(self.auto_question_checkbox)
        controls_row.addStretch()
        controls_row.addWidget(QLabel("Every"))
        self.interval_spinbox = QSpinBox()
        self.interval_spinbox.setRange(MIN_INTERVAL_MINUTES, MAX_INTERVAL_MINUTES)
        self.interval_spinbox.setValue(self.lecture_manager.get_state().interval_minutes)
        self.interval_spinbox.setSuffix(" min")
        self.interval_spinbox.editingFinished.connect(self._handle_interval_changed)
        controls_row.addWidget(self.interval_spinbox)
        group_layout.addLayout(controls_row)

        layout.addWidget(group)

    def _build_queue_group(self, layout: QVBoxLayout) -> None:
        group = QGroupBox("Check-in Questions")
        group_layout = QVBoxLayout()
        group.setLayout(group_layout)

        self.question_input = QPlainTextEdit()
        self.question_input.setPlaceholderText(PLACEHOLDER_QUESTION)
        self.question_input.setFixedHeight(80)
        group_layout.addWidget(self.question_input)

        button_row = QHBoxLayout()
        self.enqueue_button = QPushButton(BUTTON_ENQUEUE)
        self.enqueue_button.clicked.connect(self._handle_enqueue)
        button_row.addWidget(self.enqueue_button)
        self.send_now_button = QPushButton(BUTTON_SEND_NOW)
        self.send_now_button.clicked.connect(self._handle_send_now)
        button_row.addWidget(self.send_now_button)
        button_row.addStretch()
        self.queue_count_label = QLabel()
        button_row.addWidget(self.queue_count_label)
        group_layout.addLayout(button_row)

        self.queue_list = QListWidget()
        group_layout.addWidget(self.queue_list)

        layout.addWidget(group)

    def _build_results_group(self, layout: QVBoxLayout) -> None:
        group = QGroupBox("Last Question Results")
        group_layout = QHBoxLayout()
        group.setLayout(group_layout)

        group_layout.addWidget(QLabel("Responses"))
        self.responses_spinbox = QSpinBox()
        self.responses_spinbox.setRange(0, 10_000)
        group_layout.addWidget(self.responses_spinbox)

        group_layout.addWidget(QLabel("Correct"))
        self.correct_spinbox = QSpinBox()
        self.correct_spinbox.setRange(0, 10_000)
        group_layout.addWidget(self.correct_spinbox)

        group_layout.addStretch()
        self.share_results_button = QPushButton(BUTTON_SHARE_RESULTS)
        self.share_results_button.clicked.connect(self._handle_share_results)
        group_layout.addWidget(self.share_results_button)

        layout.addWidget(group)

    def _configure_refresh_timer(self) -> None:
        self.refresh_timer = QTimer(self)
        self.refresh_timer.setInterval(AUDIENCE_REFRESH_INTERVAL_MS)
        self.refresh_timer.timeout.connect(self._refresh_audience)
        self.refresh_timer.start()

    # --- Rendering ---

    def _refresh_audience(self) -> None:
        self.lecture_manager.refresh_audience()
        # Auto-questions pop from the queue on the tick; keep the list in step.
        self._refresh_queue()

    def _refresh_timer_view(self) -> None:
        view = self._view
        if view.countdown_visible and view.countdown > 0:
            self.countdown_label.setText(view.display_text)
            color = urgency_color(view.urgency)
            interval_seconds = view.interval_minutes * 60
            elapsed = interval_seconds - min(view.countdown, interval_seconds)
            self.progress_bar.setValue(int(elapsed / interval_seconds * 100) if interval_seconds else 0)
        else:
            self.countdown_label.setText(COUNTDOWN_IDLE_TEXT)
            color = ColorPalette.TEXT_SECONDARY.get(Theme.LIGHT)
            self.progress_bar.setValue(0)
        self.countdown_label.setStyleSheet(Styles.get_countdown_style(color))
        self.duration_label.setText(f"Recording {view.duration_text}" if view.is_recording else "Not recording")
        self.students_label.setText(STUDENT_COUNT_TEMPLATE.format(count=view.student_count))

        self.record_button.setChecked(view.is_recording)
        self.record_button.setText(BUTTON_STOP_RECORDING if view.is_recording else BUTTON_START_RECORDING)

    def _refresh_queue(self) -> None:
        questions = self.lecture_manager.get_queued_questions()
        if [self.queue_list.item(i).text() for i in range(self.queue_list.count())] != questions:
            self.queue_list.clear()
            self.queue_list.addItems(questions)
        self.queue_count_label.setText(QUEUE_COUNT_TEMPLATE.format(count=len(questions)))

    # --- Handlers ---

    def _handle_record_button(self) -> None:
        if self.lecture_manager.is_recording():
            if confirm_stop_recording(self):
                self.lecture_manager.stop_recording()
        else:
            self.lecture_manager.start_recording()
        self._refresh_timer_view()

    def _handle_auto_question_toggled(self, checked: bool) -> None:
        self.lecture_manager.set_auto_question_enabled(checked)

    def _handle_interval_changed(self) -> None:
        value = self.interval_spinbox.value()
        if value == self.lecture_manager.get_state().interval_minutes:
            return
        try:
            self.lecture_manager.set_interval_minutes(value)
        except ValueError as exc:
            show_error(self, "Invalid interval", str(exc))

    def _handle_enqueue(self) -> None:
        try:
            self.lecture_manager.enqueue_question(self.question_input.toPlainText())
        except ValueError as exc:
            show_warning(self, "Empty question", str(exc))
            return
        self.question_input.clear()
        self._refresh_queue()

    def _handle_send_now(self) -> None:
        text = self.question_input.toPlainText()
        event = self.lecture_manager.send_question_now(text)
        if event is None:
            show_warning(self, "Nothing to send", QUEUE_EMPTY_MESSAGE)
            return
        if text.strip():
            self.question_input.clear()
        self._refresh_queue()

    def _handle_share_results(self) -> None:
        try:
            self.lecture_manager.report_question_stats(self.responses_spinbox.value(), self.correct_spinbox.value())
        except ValueError as exc:
            show_error(self, "Invalid results", str(exc))

    def _handle_open_pip(self) -> None:
        if self._pip_window is not None:
            self._pip_window.raise_()
            self._pip_window.activateWindow()
            return
        mirror = self.lecture_manager.open_pip_mirror()
        self._pip_window = PipWindow(mirror, on_close=self._handle_pip_closed)
        self._pip_window.show()

    def _handle_pip_closed(self, mirror: PipMirror) -> None:
        self.lecture_manager.close_pip_mirror(mirror)
        self._pip_window = None

    def _handle_about(self) -> None:
        details = f"{APP_NAME} v{APP_VERSION}\nLicense: {APP_LICENSE}\n\n{APP_ABOUT_TEXT}"
        show_info(self, f"About {APP_NAME}", details)

    def _handle_help(self) -> None:
        show_info(self, f"{APP_NAME} Help", HELP_TEXT)

    def _handle_settings(self) -> None:
        state = self.lecture_manager.get_state()
        dialog = SettingsDialog(
            self,
            interval_minutes=state.interval_minutes,
            auto_question_enabled=state.auto_question_enabled,
            ui_font_size=self._ui_font_size,
        )
        if dialog.exec():
            self._ui_font_size = dialog.get_ui_font_size()
            try:
                self.lecture_manager.set_interval_minutes(dialog.get_interval_minutes())
            except ValueError as exc:
                show_error(self, "Invalid interval", str(exc))
            self.interval_spinbox.setValue(dialog.get_interval_minutes())
            # toggled fires only on a change, which forwards the flag to the manager.
            self.auto_question_checkbox.setChecked(dialog.get_auto_question_enabled())
            self._apply_styles()

    def _apply_styles(self) -> None:
        self.setStyleSheet(Styles.get_main_window_style())
        ui_style = f"font-size: {self._ui_font_size}pt;"
        for button in (
            self.record_button,
            self.pip_button,
            self.about_button,
            self.help_button,
            self.settings_button,
            self.enqueue_button,
            self.send_now_button,
            self.share_results_button,
        ):
            button.setStyleSheet(ui_style)

    def closeEvent(self, event: QCloseEvent) -> None:
        self.refresh_timer.stop()
        if self._pip_window is not None:
            self._pip_window.close()
        self.lecture_manager.dispose()
        super().closeEvent(event)
