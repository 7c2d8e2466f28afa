# Application Package
from .evaluator import evaluate, normalize, similarity, suggest_grade
from .scheduler import Scheduler, ScheduleResult, schedule

__all__ = [
    "Scheduler",
    "ScheduleResult",
    "evaluate",
    "normalize",
    "schedule",
    "similarity",
    "suggest_grade",
]
