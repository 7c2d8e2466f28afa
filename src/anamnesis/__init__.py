"""anamnesis: flashcard review scheduler and answer grader."""

from anamnesis.consts import VERSION

__version__ = VERSION
