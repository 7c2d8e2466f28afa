"""Centralized constants for the anamnesis scheduling policy.

All magic numbers live here so the scheduler, the evaluator and the
review service import from a single source of truth.
"""

# ---------- Time ----------
MS_PER_MINUTE = 60 * 1000
MS_PER_DAY = 24 * 60 * 60 * 1000

# ---------- Ease ----------
INITIAL_EASE = 2.5
MIN_EASE = 1.3
AGAIN_EASE_PENALTY = 0.2
HARD_EASE_PENALTY = 0.15
GOOD_EASE_BONUS = 0.1
EASY_EASE_BONUS = 0.15
EASY_INTERVAL_BONUS = 0.3  # added to ease when multiplying the interval

# ---------- Intervals ----------
AGAIN_INTERVAL_MINUTES = 1
HARD_LEARNING_INTERVAL_MINUTES = 10
HARD_REVIEW_MULTIPLIER = 1.2
HARD_REVIEW_MIN_DAYS = 1
GOOD_NEW_INTERVAL_DAYS = 1
GOOD_GRADUATE_SHORT_DAYS = 1
GOOD_GRADUATE_DAYS = 3
EASY_NEW_INTERVAL_DAYS = 4
EASY_LEARNING_INTERVAL_DAYS = 7

# ---------- Difficulty ----------
INITIAL_DIFFICULTY = 0.5
AGAIN_DIFFICULTY_STEP = 0.1
HARD_DIFFICULTY_STEP = 0.05
GOOD_DIFFICULTY_STEP = 0.05
EASY_DIFFICULTY_STEP = 0.1

# ---------- Correct count ----------
HARD_CREDIT = 0.5
FULL_CREDIT = 1.0

# ---------- Answer evaluation ----------
MIN_LENGTH_RATIO = 0.3
CORRECT_THRESHOLD = 0.9
PARTIAL_THRESHOLD = 0.7
CLOZE_PARTIAL_THRESHOLD = 0.6  # cloze blanks are graded more leniently
CLOZE_HALF_CREDIT = 0.5
ALTERNATIVE_SEPARATORS = "/|"

# ---------- Grade suggestion ----------
SUGGEST_EASY = 0.9
SUGGEST_GOOD = 0.8
SUGGEST_HARD = 0.5

# ---------- Review history ----------
DEFAULT_LOG_RETENTION = 1000

# ---------- Review queue ----------
RELEARNING_PRIORITY = 200
NEW_PRIORITY = 100

# ---------- Difficult cards ----------
DIFFICULT_THRESHOLD = 0.7
DEFAULT_DIFFICULT_LIMIT = 10
SLOW_ANSWER_SECONDS = 60
MEMORY_PATTERN_MAX_INTERVAL = 3
MEMORY_PATTERN_MIN_LAPSES = 2
CONCEPT_PATTERN_WINDOW = 5
CONCEPT_PATTERN_MIN_FAILURES = 3
PATTERN_MIN_LOGS = 3

# ---------- Storage ----------
CARDS_FILENAME = "flashcards.json"
LOGS_FILENAME = "review-logs.json"
DEFAULT_DECK = "Default"
