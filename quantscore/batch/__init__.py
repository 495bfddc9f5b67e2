from quantscore.batch.runner import (
    BatchItemFailure,
    BatchItemSuccess,
    BatchReport,
    BatchRunner,
    normalize_symbol,
)

__all__ = [
    "BatchItemFailure",
    "BatchItemSuccess",
    "BatchReport",
    "BatchRunner",
    "normalize_symbol",
]
