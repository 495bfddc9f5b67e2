from datetime import date, datetime
from typing import Optional

from sqlalchemy import JSON, Date, DateTime, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class CompositeResultModel(Base):
    __tablename__ = "composite_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    study: Mapped[str] = mapped_column(String(8), nullable=False)
    symbol: Mapped[str] = mapped_column(String(16), nullable=False)
    analysis_date: Mapped[date] = mapped_column(Date, nullable=False)

    overall_score: Mapped[float] = mapped_column(Float, nullable=False)
    signal: Mapped[str] = mapped_column(String(16), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    data_points_count: Mapped[int] = mapped_column(Integer, default=0)
    current_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    computation_time_ms: Mapped[float] = mapped_column(Float, default=0.0)

    # Full serialized result plus the pieces most often queried on their own
    data: Mapped[dict] = mapped_column(JSONType, nullable=False)
    components: Mapped[list] = mapped_column(JSONType, default=list)
    warning_flags: Mapped[list] = mapped_column(JSONType, default=list)
    provenance: Mapped[dict] = mapped_column(JSONType, default=dict)
    explanation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('study', 'symbol', 'analysis_date', name='uq_study_symbol_date'),
        Index('idx_symbol_date', 'symbol', 'analysis_date'),
    )
