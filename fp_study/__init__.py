"""
FP Study

Study-progress engine for a multiple-choice exam quiz: question corpus
storage, per-question mastery, study-mode selection and statistics.
"""

from . import db
from . import mastery
from . import progress
from . import selection
from . import statistics
from . import session
from . import corpus
from . import settings

__version__ = "0.1.0"
__all__ = ["db", "mastery", "progress", "selection", "statistics", "session", "corpus", "settings"]
