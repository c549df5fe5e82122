"""Centralized constants for the Marginalia scheduling core.

All magic numbers and algorithm defaults live here so every layer
imports from a single source of truth.
"""

# ---------- FSRS forgetting curve ----------
DECAY = -0.5
FACTOR = 19 / 81  # 0.9 ** (1 / DECAY) - 1, so R(S) == 0.9

# ---------- FSRS-5 default parameters ----------
DEFAULT_WEIGHTS: tuple[float, ...] = (
    0.40255,
    1.18385,
    3.173,
    15.69105,
    7.1949,
    0.5345,
    1.4604,
    0.0046,
    1.54575,
    0.1192,
    1.01925,
    1.9395,
    0.11,
    0.29605,
    2.2698,
    0.2315,
    2.9898,
    0.51655,
    0.6621,
)
WEIGHT_COUNT = 19

DEFAULT_REQUEST_RETENTION = 0.9
DEFAULT_MAXIMUM_INTERVAL = 36500  # days (100 years)

# ---------- Bounds ----------
DIFFICULTY_MIN = 1.0
DIFFICULTY_MAX = 10.0
STABILITY_MIN = 0.01

# ---------- Short-term steps (minutes) ----------
# New cards: again, hard, good. Easy graduates straight to review.
NEW_CARD_STEPS_MINUTES = (1, 5, 10)
# (Re)learning cards: again, hard. Good and easy graduate.
LEARNING_STEPS_MINUTES = (5, 10)
RELEARNING_STEP_MINUTES = 5

# ---------- Fuzz ----------
FUZZ_MIN_INTERVAL = 2.5  # days; shorter intervals are never fuzzed
# (start, end, factor)
FUZZ_RANGES = (
    (2.5, 7.0, 0.15),
    (7.0, 20.0, 0.1),
    (20.0, float("inf"), 0.05),
)

# ---------- Time ----------
SECONDS_PER_DAY = 86400.0
