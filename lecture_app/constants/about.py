"""Static metadata describing LectureSync."""

APP_NAME = "LectureSync"
APP_VERSION = "0.2"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "LectureSync keeps every student screen in step with the instructor's auto-question "
    "countdown. Start recording, pick an interval, and students following the lecture page "
    "see the same timer, a warning as the next check-in approaches, and a flash when it is sent."
)

HELP_TEXT = (
    "Start Recording begins the lecture clock. With auto-questions enabled, the next queued "
    "check-in question is sent every interval and the countdown restarts.\n\n"
    "Add questions to the queue before or during the lecture. When the queue is empty the "
    "interval passes without sending anything.\n\n"
    "Open PiP shows a small always-on-top window you can keep next to your slides."
)
