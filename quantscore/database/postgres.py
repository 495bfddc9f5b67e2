import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from quantscore.database.models import CompositeResultModel
from quantscore.database.port import RecordId, ResultStore, StoredResult, validate_record
from quantscore.providers.exceptions import StorageError
from quantscore.signals.scoring.types import CompositeResult

logger = logging.getLogger(__name__)


def _to_stored(model: CompositeResultModel) -> StoredResult:
    return StoredResult(
        id=model.id,
        study=model.study,
        symbol=model.symbol,
        analysis_date=model.analysis_date,
        overall_score=model.overall_score,
        signal=model.signal,
        confidence=model.confidence,
        data=model.data or {},
        updated_at=model.updated_at,
    )


class PostgresResultStore(ResultStore):
    """ResultStore backed by PostgreSQL through async SQLAlchemy and asyncpg."""

    def __init__(self, config=None, database_url: Optional[str] = None, echo: bool = False):
        self._engine = None
        self._session_factory = None
        self.config = config
        self.database_url = database_url or (config.postgres_url if config else None)
        self.echo = echo

    async def connect(self):
        """Initialize the database connection pool."""
        if self._engine:
            return
        if not self.database_url:
            raise StorageError("No database URL configured")

        pool_size = getattr(self.config, "postgres_pool_size", 5) if self.config else 5
        try:
            self._engine = create_async_engine(self.database_url, echo=self.echo, pool_size=pool_size)
            self._session_factory = async_sessionmaker(
                self._engine, expire_on_commit=False, class_=AsyncSession
            )
            logger.info("Connected to PostgreSQL")
        except SQLAlchemyError as e:
            logger.error(f"Failed to connect to PostgreSQL: {e}")
            raise StorageError(f"cannot connect to PostgreSQL: {e}") from e

    async def disconnect(self):
        """Close the database connection pool."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Disconnected from PostgreSQL")

    async def health_check(self) -> bool:
        """Check database connectivity."""
        if not self._engine:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return False

    def _sessions(self) -> async_sessionmaker:
        if self._session_factory is None:
            raise StorageError("PostgresResultStore is not connected")
        return self._session_factory

    async def store(self, record: CompositeResult, symbol: str, analysis_date: date) -> RecordId:
        """Insert or update the result for (study, symbol, analysis_date)."""
        data = validate_record(record, symbol, analysis_date)
        study = record.study.value

        async with self._sessions()() as session:
            try:
                stmt = select(CompositeResultModel).where(
                    CompositeResultModel.study == study,
                    CompositeResultModel.symbol == symbol,
                    CompositeResultModel.analysis_date == analysis_date,
                )
                result = await session.execute(stmt)
                existing = result.scalars().first()

                values = dict(
                    overall_score=record.overall_score,
                    signal=record.signal.value,
                    confidence=record.confidence,
                    data_points_count=record.data_points_count,
                    current_price=record.current_price,
                    computation_time_ms=record.computation_time_ms,
                    data=data,
                    components=data["components"],
                    warning_flags=data["warning_flags"],
                    provenance=data["provenance"],
                    explanation=record.explanation,
                )
                if existing:
                    for key, value in values.items():
                        setattr(existing, key, value)
                    model = existing
                else:
                    model = CompositeResultModel(
                        study=study,
                        symbol=symbol,
                        analysis_date=analysis_date,
                        **values,
                    )
                    session.add(model)
                await session.commit()
                logger.debug(f"Stored {study} result for {symbol} {analysis_date} (id {model.id})")
                return model.id
            except SQLAlchemyError as e:
                logger.error(f"Error storing {study} result for {symbol} {analysis_date}: {e}")
                await session.rollback()
                raise StorageError(f"failed to store {symbol} {analysis_date}: {e}") from e

    async def get(self, study: str, symbol: str, analysis_date: date) -> Optional[StoredResult]:
        async with self._sessions()() as session:
            result = await session.execute(
                select(CompositeResultModel).where(
                    CompositeResultModel.study == study,
                    CompositeResultModel.symbol == symbol,
                    CompositeResultModel.analysis_date == analysis_date,
                )
            )
            model = result.scalars().first()
            return _to_stored(model) if model else None

    async def get_latest(self, study: str, symbol: str) -> Optional[StoredResult]:
        history = await self.get_history(study, symbol, limit=1)
        return history[0] if history else None

    async def get_history(self, study: str, symbol: str, limit: int = 30) -> List[StoredResult]:
        async with self._sessions()() as session:
            result = await session.execute(
                select(CompositeResultModel)
                .where(CompositeResultModel.study == study, CompositeResultModel.symbol == symbol)
                .order_by(CompositeResultModel.analysis_date.desc())
                .limit(limit)
            )
            return [_to_stored(m) for m in result.scalars().all()]
