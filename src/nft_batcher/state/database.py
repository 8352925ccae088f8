"""
Database module for persistent state storage.

Uses SQLAlchemy for async database operations with SQLite by default.
Stores run reports and per-item checkpoints used to resume a run.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from nft_batcher.config import BatcherConfig
from nft_batcher.core.orchestrator import CheckpointStore
from nft_batcher.core.report import Report
from nft_batcher.core.result import BatchEntry

logger = structlog.get_logger(__name__)

Base = declarative_base()


class ReportRecord(Base):
    """Database model for run reports."""

    __tablename__ = "reports"

    run_id = Column(String(50), primary_key=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    total = Column(Integer, nullable=False, default=0)
    succeeded = Column(Integer, nullable=False, default=0)
    failed = Column(Integer, nullable=False, default=0)
    timed_out = Column(Integer, nullable=False, default=0)
    skipped = Column(Integer, nullable=False, default=0)

    cancelled = Column(Boolean, nullable=False, default=False)
    fatal_error = Column(Text, nullable=True)
    result_json = Column(Text, nullable=False)  # JSON encoded BatchResult


class CheckpointRecord(Base):
    """Database model for run checkpoints."""

    __tablename__ = "checkpoints"

    run_id = Column(String(50), primary_key=True)
    account = Column(String(150), nullable=True)
    last_index = Column(Integer, nullable=False)
    next_nonce = Column(Integer, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CheckpointEntryRecord(Base):
    """Database model for the recorded entry of each processed item."""

    __tablename__ = "checkpoint_entries"

    run_id = Column(String(50), primary_key=True)
    item_index = Column(Integer, primary_key=True)
    entry_json = Column(Text, nullable=False)  # JSON encoded BatchEntry


@dataclass
class Checkpoint:
    """Progress of a run: the last processed index and the next nonce."""
    run_id: str
    account: Optional[str]
    last_index: int
    next_nonce: Optional[int]
    updated_at: Optional[datetime] = None

    @property
    def resume_index(self) -> int:
        return self.last_index + 1


class Database(CheckpointStore):
    """
    Async database interface for state persistence.

    Provides methods to save and load reports and checkpoints.
    """

    def __init__(self, config: BatcherConfig):
        """
        Initialize database connection.

        Args:
            config: Batcher configuration (``database_url`` must be set)
        """
        if not config.database_url:
            raise ValueError("database_url is not configured")

        self.config = config
        self._engine = None
        self._session_factory = None

    async def connect(self) -> None:
        """Initialize database connection and create tables."""
        self._engine = create_async_engine(
            self.config.database_url,
            echo=False,
        )

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("database_connected", url=self.config.database_url.split("///")[0])

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("database_disconnected")

    def _get_session(self) -> AsyncSession:
        """Get a new database session."""
        if not self._session_factory:
            raise RuntimeError("Database not connected")
        return self._session_factory()

    # Report operations

    async def save_report(self, report: Report) -> None:
        """Save or replace a report."""
        async with self._get_session() as session:
            record = await session.get(ReportRecord, report.run_id)
            if record is None:
                record = ReportRecord(run_id=report.run_id)
                session.add(record)

            record.created_at = report.created_at
            record.total = report.total
            record.succeeded = report.succeeded
            record.failed = report.failed
            record.timed_out = report.timed_out
            record.skipped = report.skipped
            record.cancelled = report.cancelled
            record.fatal_error = report.fatal_error
            record.result_json = json.dumps(report.result)

            await session.commit()

        logger.debug("report_saved", run_id=report.run_id)

    async def load_report(self, run_id: str) -> Optional[Report]:
        """Load a report by run ID."""
        async with self._get_session() as session:
            record = await session.get(ReportRecord, run_id)
            if not record:
                return None
            return self._record_to_report(record)

    async def list_reports(self, limit: int = 20) -> List[Report]:
        """Load the most recent reports, newest first."""
        async with self._get_session() as session:
            result = await session.execute(
                select(ReportRecord).order_by(ReportRecord.created_at.desc()).limit(limit)
            )
            return [self._record_to_report(r) for r in result.scalars().all()]

    @staticmethod
    def _record_to_report(record: ReportRecord) -> Report:
        return Report(
            run_id=record.run_id,
            created_at=record.created_at,
            total=record.total,
            succeeded=record.succeeded,
            failed=record.failed,
            timed_out=record.timed_out,
            skipped=record.skipped,
            cancelled=record.cancelled,
            fatal_error=record.fatal_error,
            result=json.loads(record.result_json),
        )

    # Checkpoint operations

    async def save_checkpoint(
        self,
        run_id: str,
        account: Optional[str],
        index: int,
        next_nonce: Optional[int],
        entry: Optional[BatchEntry] = None,
    ) -> None:
        """Record that ``index`` was the last processed item of a run, with its entry."""
        async with self._get_session() as session:
            record = await session.get(CheckpointRecord, run_id)
            if record is None:
                record = CheckpointRecord(run_id=run_id)
                session.add(record)

            record.account = account
            record.last_index = index
            record.next_nonce = next_nonce
            record.updated_at = datetime.utcnow()

            if entry is not None:
                entry_record = await session.get(CheckpointEntryRecord, (run_id, entry.index))
                if entry_record is None:
                    entry_record = CheckpointEntryRecord(run_id=run_id, item_index=entry.index)
                    session.add(entry_record)
                entry_record.entry_json = json.dumps(entry.to_dict())

            await session.commit()

    async def load_checkpoint_entries(self, run_id: str) -> List[BatchEntry]:
        """Load the entries recorded for a run, in input order."""
        async with self._get_session() as session:
            result = await session.execute(
                select(CheckpointEntryRecord)
                .where(CheckpointEntryRecord.run_id == run_id)
                .order_by(CheckpointEntryRecord.item_index)
            )
            return [
                BatchEntry.from_dict(json.loads(r.entry_json))
                for r in result.scalars().all()
            ]

    async def load_checkpoint(self, run_id: str) -> Optional[Checkpoint]:
        """Load the checkpoint of a run."""
        async with self._get_session() as session:
            record = await session.get(CheckpointRecord, run_id)
            if not record:
                return None
            return Checkpoint(
                run_id=record.run_id,
                account=record.account,
                last_index=record.last_index,
                next_nonce=record.next_nonce,
                updated_at=record.updated_at,
            )


async def init_database(config: BatcherConfig) -> Database:
    """
    Initialize and connect to the database.

    Args:
        config: Batcher configuration

    Returns:
        Connected Database instance
    """
    db = Database(config)
    await db.connect()
    return db
