"""Application entry point for the LectureSync presenter."""

from __future__ import annotations

import socket
import sys

from PySide6.QtWidgets import QApplication

from lecture_app.constants.about import APP_NAME
from lecture_app.core.lecture_manager import LectureManager
from lecture_app.core.settings import load_settings
from lecture_app.server.api_server import start_api_server
from lecture_app.ui.presenter_window import PresenterWindow
from lecture_app.ui.qt_scheduling import QtScheduler
from lecture_app.utils.logging_config import configure_logging


def _determine_student_url(port: int) -> str:
    """Best-effort determination of the local IP for student-facing URL."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def main() -> None:
    """Initialize logging, start the relay, and launch the Qt UI."""
    settings = load_settings()
    logger = configure_logging(settings.log_level)
    logger.info("Starting %s for instructor %s", APP_NAME, settings.instructor_id)

    app = QApplication(sys.argv)
    scheduler = QtScheduler(app)
    lecture_manager = LectureManager(settings, scheduler)
    start_api_server(lecture_manager.hub, settings)
    student_url = _determine_student_url(settings.port)
    logger.info("Student page available at %s", student_url)

    window = PresenterWindow(lecture_manager=lecture_manager, student_url=student_url)
    window.show()
    exit_code = app.exec()
    scheduler.cancel_all()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
