"""
Shared constants used across multiple modules.
Single source of truth for score thresholds, categories and lookup tables.
"""

# Score bounds for every 0-100 output
SCORE_MIN = 0
SCORE_MAX = 100

# Match scores never claim perfect certainty
MATCH_SCORE_MAX = 98
MATCH_SCORE_BASE = 70
MATCH_SCORE_CONCERN_BONUS = 8
FALLBACK_MATCH_SCORE = 72
MIN_CREDIBLE_MATCH = 20

# Catalog categories (GlobalProduct taxonomy)
PRODUCT_CATEGORIES = (
    "cleansers", "toners", "essences", "serums", "ampoules", "moisturizers",
    "sunscreens", "treatments", "masks", "eye-creams", "lip-care",
    "body-care", "hair-care",
)
REQUIRED_CATEGORIES = ("cleansers", "serums", "moisturizers", "sunscreens")

# Journal mood -> 1-4 scale
MOOD_SCALE = {"great": 4, "good": 3, "okay": 2, "bad": 1}

# Correlation gates
MIN_MATCHED_PAIRS = 3
TRIGGER_THRESHOLD = 0.3
HIGH_CONFIDENCE_THRESHOLD = 0.5
BREAKOUT_WINDOW_DAYS = 2
PRODUCT_WINDOW_DAYS = 14

# Lifestyle reporter needs at least a week of journal data
MIN_JOURNAL_ENTRIES = 7

# Medical alert rules
PERSISTENT_ACNE_WINDOW_DAYS = 90
PERSISTENT_ACNE_MIN_BREAKOUTS = 8
RAPID_CHANGE_WINDOW_DAYS = 7
RAPID_CHANGE_POINTS = 20
SEVERE_SIDE_EFFECTS = {"severe irritation", "allergic reaction"}

# Week-over-week trend deltas: (metric, threshold)
TREND_THRESHOLDS = {
    "mood": 0.2,
    "sleep": 0.5,
    "water": 1.0,
    "consistency": 1.0,
}

# Merged insight lists
MAX_MERGED_ITEMS = 5
DEDUP_PREFIX_CHARS = 20
