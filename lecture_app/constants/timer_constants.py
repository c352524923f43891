"""Countdown thresholds and timings shared by the presenter and every receiver."""

DEFAULT_INTERVAL_MINUTES: int = 15
MIN_INTERVAL_MINUTES: int = 1
MAX_INTERVAL_MINUTES: int = 120

TICK_SECONDS: float = 1.0

# Urgency tiers: above WARNING_THRESHOLD is calm, below CRITICAL_THRESHOLD is critical.
WARNING_THRESHOLD_SECONDS: int = 30
CRITICAL_THRESHOLD_SECONDS: int = 10

# Snapshots always go out every tick once the countdown is this low.
ALWAYS_SYNC_BELOW_SECONDS: int = 10

STUDENT_FLASH_SECONDS: float = 1.0
PIP_FLASH_SECONDS: float = 1.5
STALE_AFTER_SECONDS: float = 15.0

BROADCAST_PREVIEW_CHARS: int = 100
PIP_PREVIEW_CHARS: int = 80

GOOD_CORRECTNESS_PERCENT: float = 70.0
FAIR_CORRECTNESS_PERCENT: float = 40.0
