"""Persistence layer for repayment schedules.

A loan's schedule is stored as one row per installment. Re-running the engine
after the terms change replaces the whole schedule inside a single
transaction, so readers never observe a half-written schedule. It defaults to
SQLite for local development, but accepts any SQLAlchemy-compatible URL (e.g.
PostgreSQL/MySQL) for deployments.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Sequence

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    create_engine,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


class RepaymentScheduleModel(Base):
    __tablename__ = "repayment_schedules"
    __table_args__ = (UniqueConstraint("loan_id", "payment_number", name="uq_loan_payment"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_id = Column(String(64), index=True, nullable=False)
    payment_number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    principal_portion = Column(Numeric(18, 2), nullable=False)
    interest_portion = Column(Numeric(18, 2), nullable=False)
    management_fee_portion = Column(Numeric(18, 2), nullable=False)
    total_payment = Column(Numeric(18, 2), nullable=False)
    remaining_balance = Column(Numeric(18, 2), nullable=False)
    is_paid = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


_ROW_FIELDS = (
    "loan_id",
    "payment_number",
    "due_date",
    "principal_portion",
    "interest_portion",
    "management_fee_portion",
    "total_payment",
    "remaining_balance",
    "is_paid",
)


class ScheduleStore:
    """Database-backed repayment-schedule store."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def replace_schedule(self, loan_id: str, rows: Sequence[Dict[str, Any]]) -> int:
        """Replace every stored installment of ``loan_id`` with ``rows``.

        Delete and insert run in one transaction; running it twice with the
        same rows leaves the same table. Returns the number of rows written.
        """
        payload = [{k: row[k] for k in _ROW_FIELDS} for row in rows]
        if any(row["loan_id"] != loan_id for row in payload):
            raise ValueError(f"All rows must belong to loan {loan_id}")
        with self._session_factory.begin() as session:
            session.execute(
                delete(RepaymentScheduleModel).where(RepaymentScheduleModel.loan_id == loan_id)
            )
            if payload:
                session.execute(insert(RepaymentScheduleModel), payload)
        logger.info("Stored %d installments", len(payload), extra={"loan_id": loan_id})
        return len(payload)

    def get_schedule(self, loan_id: str) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            rows: Iterable[RepaymentScheduleModel] = session.execute(
                select(RepaymentScheduleModel)
                .where(RepaymentScheduleModel.loan_id == loan_id)
                .order_by(RepaymentScheduleModel.payment_number.asc())
            ).scalars()
            return [self._to_dict(row) for row in rows]

    def delete_schedule(self, loan_id: str) -> None:
        with self._session_factory.begin() as session:
            session.execute(
                delete(RepaymentScheduleModel).where(RepaymentScheduleModel.loan_id == loan_id)
            )

    def mark_paid(self, loan_id: str, payment_number: int) -> bool:
        """Flag one installment as paid; False if no such installment exists."""
        with self._session_factory.begin() as session:
            result = session.execute(
                update(RepaymentScheduleModel)
                .where(
                    RepaymentScheduleModel.loan_id == loan_id,
                    RepaymentScheduleModel.payment_number == payment_number,
                )
                .values(is_paid=True)
            )
            return result.rowcount > 0

    @staticmethod
    def _to_dict(row: RepaymentScheduleModel) -> Dict[str, Any]:
        return {field: getattr(row, field) for field in _ROW_FIELDS}


def create_store_from_env(url: str | None) -> ScheduleStore:
    return ScheduleStore(url or "sqlite:///repayment_schedules.sqlite3")
