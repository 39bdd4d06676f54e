"""Database-backed source of the rate table and fee policy.

Rates and handling charges are administered per branch and live in a
database. This module reads them through SQLAlchemy and hands the engine an
immutable ``PolicySnapshot`` taken in a single session, so a batch of
calculations never mixes two versions of the policy. It defaults to SQLite
for local use but accepts any SQLAlchemy-compatible URL.

Two tables are used: ``settings`` (``key_name`` / ``value`` strings, see
``pawn_calc.settings`` for the keys) and ``interest_rates`` (one row per
``rate_type``). Active ``interest_rates`` rows take precedence over the
``interest_rate_*`` settings keys.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Dict

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from .data_models import FeePolicy, RateSet
from .settings import fee_policy_from_settings, rates_from_settings
from .utils import to_decimal

logger = logging.getLogger(__name__)

Base = declarative_base()

SETTINGS_URL_ENV = "PAWN_SETTINGS_DATABASE_URL"
DEFAULT_SETTINGS_URL = "sqlite:///pawn_settings.sqlite3"

# rate_type values as stored; "extended" is the older name for renewed.
RATE_TYPE_FIELDS = {
    "standard": "standard_rate",
    "renewed": "renewed_rate",
    "extended": "renewed_rate",
    "overdue": "overdue_rate",
}


class SettingModel(Base):
    __tablename__ = "settings"

    key_name = Column(String(100), primary_key=True)
    value = Column(String(255), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class InterestRateModel(Base):
    __tablename__ = "interest_rates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rate_type = Column(String(32), index=True, nullable=False)
    rate_percentage = Column(Numeric(6, 2), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


@dataclass(frozen=True)
class PolicySnapshot:
    """Rates and fee policy read together at one point in time."""

    rates: RateSet
    fee_policy: FeePolicy


class SettingsStore:
    """Settings store backed by a SQLAlchemy database."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def snapshot(self) -> PolicySnapshot:
        """Read settings and active rates in one session."""
        with self._session_factory() as session:
            values: Dict[str, str] = {
                row.key_name: row.value
                for row in session.execute(select(SettingModel)).scalars()
            }
            rate_rows = session.execute(
                select(InterestRateModel)
                .where(InterestRateModel.is_active.is_(True))
                .order_by(InterestRateModel.id.asc())
            ).scalars().all()

        rates = rates_from_settings(values)
        overrides: Dict[str, Decimal] = {}
        for row in rate_rows:
            field_name = RATE_TYPE_FIELDS.get(row.rate_type.lower())
            if field_name is None:
                logger.warning("Ignoring interest rate row with unknown rate_type %r", row.rate_type)
                continue
            # First active row per type wins.
            overrides.setdefault(field_name, to_decimal(row.rate_percentage))
        if overrides:
            rates = replace(rates, **overrides)

        snapshot = PolicySnapshot(rates=rates, fee_policy=fee_policy_from_settings(values))
        logger.debug("Loaded policy snapshot %s", snapshot)
        return snapshot

    def set_value(self, key_name: str, value: str) -> None:
        with self._session_factory() as session:
            row = session.get(SettingModel, key_name)
            if row is None:
                session.add(SettingModel(key_name=key_name, value=str(value)))
            else:
                row.value = str(value)
            session.commit()

    def set_rate(self, rate_type: str, rate_percentage: str) -> None:
        """Make ``rate_percentage`` the only active rate of ``rate_type``."""
        with self._session_factory() as session:
            session.execute(
                InterestRateModel.__table__.update()
                .where(InterestRateModel.rate_type == rate_type)
                .values(is_active=False)
            )
            session.add(
                InterestRateModel(
                    rate_type=rate_type,
                    rate_percentage=to_decimal(rate_percentage),
                    is_active=True,
                )
            )
            session.commit()


def create_store_from_env(url: str | None = None) -> SettingsStore:
    """Open the store at ``url``, else ``$PAWN_SETTINGS_DATABASE_URL``, else local SQLite."""
    return SettingsStore(url or os.environ.get(SETTINGS_URL_ENV) or DEFAULT_SETTINGS_URL)
