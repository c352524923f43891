"""Network configuration constants for the lecture relay."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
DEFAULT_SERVER_URL: str = "http://127.0.0.1:8000"

STUDENT_TOPIC_PREFIX: str = "lecture-timer-"
PRESENTER_TOPIC_PREFIX: str = "lecture-presenter-"

SSE_KEEPALIVE_SECONDS: float = 15.0
PUSH_RECONNECT_DELAY_SECONDS: float = 3.0
POLL_AUDIENCE_WINDOW_SECONDS: float = 10.0
HUB_HISTORY_SIZE: int = 64
HUB_MAX_TOPICS: int = 256
DEFAULT_POLL_INTERVAL_SECONDS: float = 2.0
HTTP_TIMEOUT_SECONDS: float = 5.0
