"""
Composite studies.

Each study drives one pipeline run per symbol: acquisition through the
provider chains, component scoring, combination, classification and
result assembly.
"""
from quantscore.studies.base import Study
from quantscore.studies.assembler import ResultAssembler
from quantscore.studies.timing import TimingStudy
from quantscore.studies.sentiment import SentimentStudy

__all__ = [
    "Study",
    "ResultAssembler",
    "TimingStudy",
    "SentimentStudy",
]
