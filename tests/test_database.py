import dataclasses
from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from quantscore.database import InMemoryResultStore, PostgresResultStore, validate_record
from quantscore.database.init_db import init_models
from quantscore.database.models import Base, CompositeResultModel
from quantscore.providers.exceptions import StorageError
from quantscore.signals.scoring import StudyKind

from tests.conftest import ANALYSIS_DATE, make_result


def mock_session(existing=None):
    session = AsyncMock(spec=AsyncSession)
    result = MagicMock()
    result.scalars.return_value.first.return_value = existing
    result.scalars.return_value.all.return_value = [existing] if existing else []
    session.execute.return_value = result
    session.__aenter__.return_value = session
    session.__aexit__.return_value = None
    return session


def connected_store(session):
    store = PostgresResultStore(database_url="postgresql+asyncpg://u:p@localhost/db")
    store._session_factory = MagicMock(return_value=session)
    return store


# ============================================================================
# Record contract
# ============================================================================

def test_validate_record_serializes():
    data = validate_record(make_result(), "AAPL", ANALYSIS_DATE)
    assert data["analysis_date"] == "2024-06-28"
    assert data["signal"] == "Buy"
    assert data["warning_flags"] == ["no_estimates"]


@pytest.mark.parametrize("symbol,day", [
    ("MSFT", ANALYSIS_DATE),
    ("AAPL", ANALYSIS_DATE - timedelta(days=1)),
    ("AAPL", None),
])
def test_validate_record_key_mismatch(symbol, day):
    with pytest.raises(StorageError):
        validate_record(make_result(), symbol, day)


def test_validate_record_without_date():
    with pytest.raises(StorageError):
        validate_record(make_result(day=None), "AAPL", ANALYSIS_DATE)


@pytest.mark.parametrize("field,value", [
    ("overall_score", 1.5),
    ("overall_score", float("nan")),
    ("confidence", -0.1),
    ("confidence", float("inf")),
])
def test_validate_record_out_of_range(field, value):
    record = dataclasses.replace(make_result(), **{field: value})
    with pytest.raises(StorageError):
        validate_record(record, "AAPL", ANALYSIS_DATE)


# ============================================================================
# In-memory store
# ============================================================================

@pytest.mark.asyncio
async def test_memory_store_and_get():
    store = InMemoryResultStore()
    record_id = await store.store(make_result(), "AAPL", ANALYSIS_DATE)

    stored = await store.get("TTS", "AAPL", ANALYSIS_DATE)
    assert stored.id == record_id == 1
    assert stored.signal == "Buy"
    assert stored.warning_flags == ["no_estimates"]
    assert await store.get("QSS", "AAPL", ANALYSIS_DATE) is None


@pytest.mark.asyncio
async def test_memory_upsert_keeps_id():
    store = InMemoryResultStore()
    first = await store.store(make_result(score=0.3), "AAPL", ANALYSIS_DATE)
    second = await store.store(make_result(score=-0.7), "AAPL", ANALYSIS_DATE)

    assert first == second
    assert len(store) == 1
    stored = await store.get("TTS", "AAPL", ANALYSIS_DATE)
    assert stored.overall_score == -0.7
    assert stored.signal == "StrongSell"


@pytest.mark.asyncio
async def test_memory_studies_do_not_collide():
    store = InMemoryResultStore()
    timing = await store.store(make_result(), "AAPL", ANALYSIS_DATE)
    sentiment = await store.store(make_result(study=StudyKind.SENTIMENT), "AAPL", ANALYSIS_DATE)
    assert timing != sentiment
    assert (await store.get("QSS", "AAPL", ANALYSIS_DATE)).signal == "WeakBuy"


@pytest.mark.asyncio
async def test_memory_history_newest_first():
    store = InMemoryResultStore()
    for offset in (2, 0, 1):
        day = ANALYSIS_DATE - timedelta(days=offset)
        await store.store(make_result(day=day), "AAPL", day)
    await store.store(make_result(symbol="MSFT"), "MSFT", ANALYSIS_DATE)

    history = await store.get_history("TTS", "AAPL")
    assert [r.analysis_date for r in history] == [
        ANALYSIS_DATE, ANALYSIS_DATE - timedelta(days=1), ANALYSIS_DATE - timedelta(days=2),
    ]
    assert len(await store.get_history("TTS", "AAPL", limit=2)) == 2
    assert (await store.get_latest("TTS", "AAPL")).analysis_date == ANALYSIS_DATE
    assert await store.get_latest("TTS", "GOOG") is None


@pytest.mark.asyncio
async def test_memory_rejects_invalid_record():
    store = InMemoryResultStore()
    with pytest.raises(StorageError):
        await store.store(make_result(), "MSFT", ANALYSIS_DATE)
    assert len(store) == 0


# ============================================================================
# PostgreSQL store
# ============================================================================

@pytest.mark.asyncio
async def test_postgres_insert():
    session = mock_session()
    store = connected_store(session)

    await store.store(make_result(), "AAPL", ANALYSIS_DATE)

    session.add.assert_called_once()
    model = session.add.call_args[0][0]
    assert isinstance(model, CompositeResultModel)
    assert (model.study, model.symbol, model.analysis_date) == ("TTS", "AAPL", ANALYSIS_DATE)
    assert model.signal == "Buy"
    assert model.warning_flags == ["no_estimates"]
    assert model.data["components"][0]["name"] == "rsi"
    session.commit.assert_called_once()


@pytest.mark.asyncio
async def test_postgres_update_keeps_row():
    existing = CompositeResultModel(
        id=7, study="TTS", symbol="AAPL", analysis_date=ANALYSIS_DATE,
        overall_score=0.1, signal="Neutral", confidence=0.5, data={},
    )
    session = mock_session(existing)
    store = connected_store(session)

    record_id = await store.store(make_result(score=0.65), "AAPL", ANALYSIS_DATE)

    assert record_id == 7
    session.add.assert_not_called()
    assert existing.overall_score == 0.65
    assert existing.signal == "StrongBuy"
    session.commit.assert_called_once()


@pytest.mark.asyncio
async def test_postgres_error_rolls_back():
    session = mock_session()
    session.commit.side_effect = OperationalError("INSERT", {}, Exception("connection lost"))
    store = connected_store(session)

    with pytest.raises(StorageError):
        await store.store(make_result(), "AAPL", ANALYSIS_DATE)
    session.rollback.assert_called_once()


@pytest.mark.asyncio
async def test_postgres_invalid_record_never_touches_db():
    session = mock_session()
    store = connected_store(session)

    with pytest.raises(StorageError):
        await store.store(make_result(), "AAPL", date(2020, 1, 1))
    session.execute.assert_not_called()


@pytest.mark.asyncio
async def test_postgres_get():
    existing = CompositeResultModel(
        id=3, study="TTS", symbol="AAPL", analysis_date=ANALYSIS_DATE,
        overall_score=0.3, signal="Buy", confidence=0.8, data={"explanation": "why"},
    )
    store = connected_store(mock_session(existing))

    stored = await store.get("TTS", "AAPL", ANALYSIS_DATE)
    assert stored.id == 3
    assert stored.explanation == "why"

    latest = await store.get_latest("TTS", "AAPL")
    assert latest.signal == "Buy"


@pytest.mark.asyncio
async def test_postgres_requires_connection():
    store = PostgresResultStore(database_url="postgresql+asyncpg://u:p@localhost/db")
    with pytest.raises(StorageError):
        await store.get("TTS", "AAPL", ANALYSIS_DATE)
    assert await store.health_check() is False


@pytest.mark.asyncio
async def test_postgres_without_url():
    with pytest.raises(StorageError):
        await PostgresResultStore().connect()


@pytest.mark.asyncio
async def test_init_models_creates_tables():
    conn = AsyncMock()
    begin = MagicMock()
    begin.__aenter__ = AsyncMock(return_value=conn)
    begin.__aexit__ = AsyncMock(return_value=None)
    store = MagicMock()
    store.connect = AsyncMock()
    store.disconnect = AsyncMock()
    store._engine.begin.return_value = begin

    await init_models(store)

    store.connect.assert_awaited_once()
    conn.run_sync.assert_awaited_once_with(Base.metadata.create_all)
    store.disconnect.assert_awaited_once()
