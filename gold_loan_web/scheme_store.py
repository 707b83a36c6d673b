"""Persistence layer for loan schemes.

Schemes live in the ``loan_schemes`` table with their kind-specific
configuration stored as JSON text. The store validates every scheme before
writing it and hands out immutable :class:`SchemeConfig` snapshots, read in a
single session, so a calculation never sees a half-updated scheme. It
defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from gold_loan.data_models import SchemeConfig, SchemeStatus
from gold_loan.exceptions import InvalidSchemeConfig, UnknownScheme
from gold_loan.schemes import DEFAULT_SCHEMES, config_to_dict, parse_scheme

logger = logging.getLogger(__name__)

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class LoanSchemeModel(Base):
    __tablename__ = "loan_schemes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    interest_rate = Column(Numeric(8, 4, asdecimal=True), nullable=False)
    interest_period = Column(String(32), nullable=False, default="monthly")
    calculation_type = Column(String(64), nullable=False)
    scheme_config = Column(Text, nullable=False, default="{}")
    default_validity_months = Column(Integer, nullable=True)
    status = Column(String(16), nullable=False, default=SchemeStatus.ACTIVE)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)


class SchemeStore:
    """Database-backed scheme store."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def list_schemes(self, active_only: bool = False) -> List[SchemeConfig]:
        with self._session_factory() as session:
            query = select(LoanSchemeModel).where(LoanSchemeModel.deleted_at.is_(None))
            if active_only:
                query = query.where(LoanSchemeModel.status == SchemeStatus.ACTIVE)
            rows: Iterable[LoanSchemeModel] = session.execute(
                query.order_by(LoanSchemeModel.id.asc())
            ).scalars()
            return [self._to_scheme(row) for row in rows]

    def get(self, key: Any) -> Optional[SchemeConfig]:
        """Return the scheme with the given id or slug, active or not."""
        with self._session_factory() as session:
            row = self._find(session, key)
            return self._to_scheme(row) if row else None

    def resolve(self, slug: Optional[str] = None, scheme_id: Optional[int] = None) -> SchemeConfig:
        """Return an active scheme snapshot by id (preferred) or slug.

        Raises ``UnknownScheme`` when the scheme is missing, deleted or
        inactive.
        """
        with self._session_factory() as session:
            if scheme_id is not None:
                query = select(LoanSchemeModel).where(LoanSchemeModel.id == scheme_id)
            elif slug:
                query = select(LoanSchemeModel).where(LoanSchemeModel.slug == slug)
            else:
                raise UnknownScheme()
            row = session.execute(query).scalars().first()
            if row is None or row.deleted_at is not None or row.status != SchemeStatus.ACTIVE:
                raise UnknownScheme(slug=slug if scheme_id is None else None, scheme_id=scheme_id)
            return self._to_scheme(row)

    def save_scheme(self, data: Mapping[str, Any], scheme_id: Optional[int] = None) -> SchemeConfig:
        """Validate ``data`` and insert or update a scheme.

        With ``scheme_id`` the existing row is updated, merging ``data`` over
        its current fields; otherwise the row with the same slug is updated
        or a new one is created.
        """
        with self._session_factory() as session:
            if scheme_id is not None:
                row = session.get(LoanSchemeModel, scheme_id)
                if row is None or row.deleted_at is not None:
                    raise UnknownScheme(scheme_id=scheme_id)
                merged = dict(self._row_fields(row))
                merged.update({k: v for k, v in data.items() if k != "id"})
            else:
                merged = dict(data)
                merged.pop("id", None)
                row = session.execute(
                    select(LoanSchemeModel).where(LoanSchemeModel.slug == str(merged.get("slug", "")).strip())
                ).scalars().first()
                if row is not None and row.deleted_at is not None:
                    row.deleted_at = None

            scheme = parse_scheme(merged)
            clash = session.execute(
                select(LoanSchemeModel).where(LoanSchemeModel.slug == scheme.slug)
            ).scalars().first()
            if clash is not None and clash is not row:
                raise InvalidSchemeConfig(f"Slug '{scheme.slug}' is already in use", {"slug": scheme.slug})

            if row is None:
                row = LoanSchemeModel()
                session.add(row)
            row.name = scheme.name
            row.slug = scheme.slug
            row.description = scheme.description
            row.interest_rate = scheme.base_rate
            row.interest_period = scheme.rate_period
            row.calculation_type = scheme.calculation_kind
            row.scheme_config = json.dumps(config_to_dict(scheme.config))
            row.default_validity_months = scheme.default_validity_months
            row.status = scheme.status
            session.commit()
            logger.info("Saved loan scheme %s (id=%s)", row.slug, row.id)
            return self._to_scheme(row)

    def delete_scheme(self, scheme_id: int) -> None:
        """Soft-delete a scheme; it no longer resolves or lists."""
        with self._session_factory() as session:
            row = session.get(LoanSchemeModel, scheme_id)
            if row is None or row.deleted_at is not None:
                raise UnknownScheme(scheme_id=scheme_id)
            row.deleted_at = utcnow()
            session.commit()
            logger.info("Deleted loan scheme %s (id=%s)", row.slug, row.id)

    def seed_defaults(self) -> List[SchemeConfig]:
        """Insert or refresh the built-in schemes, keyed by slug."""
        return [self.save_scheme(data) for data in DEFAULT_SCHEMES]

    @staticmethod
    def _find(session, key: Any) -> Optional[LoanSchemeModel]:
        query = select(LoanSchemeModel).where(LoanSchemeModel.deleted_at.is_(None))
        if str(key).isdigit():
            query = query.where(LoanSchemeModel.id == int(key))
        else:
            query = query.where(LoanSchemeModel.slug == str(key))
        return session.execute(query).scalars().first()

    @staticmethod
    def _row_fields(row: LoanSchemeModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "slug": row.slug,
            "description": row.description,
            "interest_rate": row.interest_rate,
            "interest_period": row.interest_period,
            "calculation_type": row.calculation_type,
            "scheme_config": row.scheme_config,
            "default_validity_months": row.default_validity_months,
            "status": row.status,
        }

    @classmethod
    def _to_scheme(cls, row: LoanSchemeModel) -> SchemeConfig:
        return parse_scheme(cls._row_fields(row))


def create_store_from_env(url: str | None) -> SchemeStore:
    return SchemeStore(url or "sqlite:///gold_loan_schemes.sqlite3")
