from quantscore.database.port import REQUIRED_FIELDS, RecordId, ResultStore, StoredResult, validate_record
from quantscore.database.memory import InMemoryResultStore
from quantscore.database.postgres import PostgresResultStore

__all__ = [
    "REQUIRED_FIELDS",
    "RecordId",
    "ResultStore",
    "StoredResult",
    "validate_record",
    "InMemoryResultStore",
    "PostgresResultStore",
]
