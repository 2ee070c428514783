"""Constants for the content analyzer."""

# Terms whose presence suggests substantive, explanatory writing
VALUE_KEYWORDS: tuple[str, ...] = (
    "research",
    "study",
    "analysis",
    "guide",
    "tutorial",
    "introduction",
    "review",
    "comparison",
    "best practices",
    "how to",
    "explained",
    "deep dive",
    "architecture",
    "performance",
    "security",
    "scalability",
)

# (exclusive lower bound on character count, score), checked in order
LENGTH_BUCKETS: tuple[tuple[int, float], ...] = (
    (2000, 1.0),
    (1000, 0.8),
    (500, 0.6),
    (200, 0.4),
)
MIN_LENGTH_SCORE = 0.2

NEUTRAL_SCORE = 0.5

EXTERNAL_LINK_PREFIXES: tuple[str, ...] = ("http://", "https://")

# Reason thresholds for explanations
STRONG_THRESHOLD = 0.7
MODERATE_THRESHOLD = 0.5
