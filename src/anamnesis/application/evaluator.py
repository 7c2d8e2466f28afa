"""
Answer evaluator for typed-answer reviews.

Compares a user's answer with the reference using normalized Levenshtein
similarity. Pure computation, no I/O.
"""

import re

from anamnesis.domain import constants as c
from anamnesis.domain.errors import InvalidArgumentError
from anamnesis.domain.models import Answer, Correctness, Evaluation, Grade

# ---------- Normalization ----------

# ASCII and the common full-width / CJK punctuation marks
PUNCTUATION = "，。！？、；：“”‘’（）《》【】" + ".,!?;:\"'()[]{}"
_PUNCT_RE = re.compile("[" + re.escape(PUNCTUATION) + "]")
_WS_RE = re.compile(r"\s+")
_ALT_RE = re.compile("[" + re.escape(c.ALTERNATIVE_SEPARATORS) + "]")


def normalize(text: str) -> str:
    """Lowercase, drop punctuation, collapse whitespace and trim.

    Punctuation goes first so that a mark between two spaces cannot leave a
    double space behind; this keeps ``normalize`` idempotent.
    """
    text = _PUNCT_RE.sub("", text.lower())
    return _WS_RE.sub(" ", text).strip()


# ---------- Similarity ----------


def levenshtein_distance(a: str, b: str) -> int:
    """Unit-cost insert/delete/substitute distance, computed row by row."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(min(previous[j - 1], current[j - 1], previous[j]) + 1)
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """``1 - distance / max(len)`` in [0, 1]. Empty input scores 0."""
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / max(len(a), len(b))


# ---------- Classification ----------


def _classify(score: float, partial_floor: float) -> Correctness:
    if score >= c.CORRECT_THRESHOLD:
        return Correctness.CORRECT
    if score >= partial_floor:
        return Correctness.PARTIAL
    return Correctness.WRONG


def _best_alternative(reference: str, user: str) -> float:
    """Highest similarity of normalized ``user`` against any alternative in ``reference``."""
    best = 0.0
    for alternative in filter(None, (normalize(alt) for alt in _ALT_RE.split(reference))):
        if alternative == user:
            return 1.0
        best = max(best, similarity(alternative, user))
    return best


def _evaluate_alternatives(reference: str, user: str) -> Evaluation:
    best = _best_alternative(reference, user)
    return Evaluation(_classify(best, c.PARTIAL_THRESHOLD), best)


def evaluate_text(reference: str, user_answer: str, *, split_alternatives: bool = False) -> Evaluation:
    """Grade a single free-text answer."""
    user = normalize(user_answer)
    if not user:
        return Evaluation(Correctness.WRONG, 0.0)

    if split_alternatives and _ALT_RE.search(reference):
        return _evaluate_alternatives(reference, user)

    ref = normalize(reference)
    # Wildly different lengths can still look similar by edit distance
    length_ratio = min(len(user), len(ref)) / max(len(user), len(ref))
    if length_ratio < c.MIN_LENGTH_RATIO:
        return Evaluation(Correctness.WRONG, 0.0)

    score = similarity(ref, user)
    return Evaluation(_classify(score, c.PARTIAL_THRESHOLD), score)


def evaluate_blanks(
    reference: list[str], user_answer: list[str], *, split_alternatives: bool = False
) -> Evaluation:
    """Grade a cloze card blank by blank. A missing user blank counts as empty.

    With ``split_alternatives`` each blank scores against its best-matching
    alternative.
    """
    if not reference:
        raise InvalidArgumentError("Cloze reference must contain at least one blank")
    if len(user_answer) > len(reference):
        raise InvalidArgumentError(
            f"Got {len(user_answer)} answers for {len(reference)} blanks"
        )

    credit = 0.0
    for i, ref in enumerate(reference):
        user = user_answer[i] if i < len(user_answer) else ""
        if split_alternatives and _ALT_RE.search(ref):
            score = _best_alternative(ref, normalize(user))
        else:
            score = similarity(normalize(ref), normalize(user))
        if score >= c.CORRECT_THRESHOLD:
            credit += 1
        elif score >= c.CLOZE_PARTIAL_THRESHOLD:
            credit += c.CLOZE_HALF_CREDIT

    overall = credit / len(reference)
    return Evaluation(_classify(overall, c.CLOZE_PARTIAL_THRESHOLD), overall)


def evaluate(reference: Answer, user_answer: Answer, *, split_alternatives: bool = False) -> Evaluation:
    """
    Classify ``user_answer`` against ``reference``.

    Both arguments must have the same shape: two strings, or two lists of
    per-blank strings (cloze).

    Raises:
        InvalidArgumentError: Mismatched shapes or malformed cloze lists.
    """
    if isinstance(reference, str) and isinstance(user_answer, str):
        return evaluate_text(reference, user_answer, split_alternatives=split_alternatives)
    if isinstance(reference, list) and isinstance(user_answer, list):
        return evaluate_blanks(reference, user_answer, split_alternatives=split_alternatives)
    raise InvalidArgumentError(
        f"Reference and answer must both be text or both be lists, "
        f"got {type(reference).__name__} and {type(user_answer).__name__}"
    )


def suggest_grade(score: float) -> Grade:
    """Map a similarity score to the grade a reviewer would most likely pick."""
    if score >= c.SUGGEST_EASY:
        return Grade.EASY
    if score >= c.SUGGEST_GOOD:
        return Grade.GOOD
    if score >= c.SUGGEST_HARD:
        return Grade.HARD
    return Grade.AGAIN
