"""Qt UI constants used across widgets."""

WINDOW_TITLE: str = "LectureSync Presenter"
PIP_WINDOW_TITLE: str = "LectureSync PiP"
STUDENT_URL_PLACEHOLDER: str = "http://<instructor-ip>:8000/"
AUDIENCE_REFRESH_INTERVAL_MS: int = 2000

BUTTON_START_RECORDING: str = "Start Recording"
BUTTON_STOP_RECORDING: str = "Stop Recording"
BUTTON_SEND_NOW: str = "Send Question Now"
BUTTON_ENQUEUE: str = "Add to Queue"
BUTTON_OPEN_PIP: str = "Open PiP"
BUTTON_SHARE_RESULTS: str = "Share Results"
CHECKBOX_AUTO_QUESTION: str = "Auto-send check-in questions"

COUNTDOWN_IDLE_TEXT: str = "--:--"
NEXT_QUESTION_LABEL: str = "Next question in"
QUEUE_EMPTY_MESSAGE: str = "The question queue is empty."
QUEUE_COUNT_TEMPLATE: str = "{count} question(s) queued"
STUDENT_COUNT_TEMPLATE: str = "{count} student(s) following"
PLACEHOLDER_QUESTION: str = "Type a check-in question (supports Markdown + LaTeX)."

PIP_RECORDING_LABEL: str = "RECORDING"
PIP_PAUSED_LABEL: str = "PAUSED"
PIP_LAST_SENT_LABEL: str = "LAST SENT"
