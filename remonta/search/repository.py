"""Read access to contractor profiles."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Protocol, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from remonta.models import ContractorRecord
from remonta.search.filters import ContractorFilter, apply_filter
from remonta.web.database import ContractorProfile

logger = logging.getLogger(__name__)


class ContractorRepository(Protocol):
    """Query-by-filter interface the search pipeline depends on."""

    def find_many(
        self,
        flt: ContractorFilter,
        limit: Optional[int],
        offset: int,
    ) -> List[ContractorRecord]:
        """Newest contractors first; ``limit=None`` returns every match."""
        ...

    def count(self, flt: ContractorFilter) -> int:
        ...

    def get(self, contractor_id: str) -> Optional[ContractorRecord]:
        ...

    def state_counts(self) -> List[Tuple[str, int]]:
        ...


class SqlAlchemyContractorRepository:
    """
    ContractorRepository backed by SQLAlchemy.

    Each call opens its own session so ``find_many`` and ``count`` can run
    on different threads at the same time.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def find_many(
        self,
        flt: ContractorFilter,
        limit: Optional[int],
        offset: int,
    ) -> List[ContractorRecord]:
        stmt = apply_filter(select(ContractorProfile), flt)
        stmt = stmt.order_by(ContractorProfile.created_at.desc(), ContractorProfile.id.desc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        with self._session_factory() as session:
            rows = session.execute(stmt).scalars().all()
            return [ContractorRecord.from_orm_row(row) for row in rows]

    def count(self, flt: ContractorFilter) -> int:
        stmt = apply_filter(select(func.count(ContractorProfile.id)), flt)
        with self._session_factory() as session:
            return session.execute(stmt).scalar_one()

    def get(self, contractor_id: str) -> Optional[ContractorRecord]:
        stmt = select(ContractorProfile).where(
            ContractorProfile.id == contractor_id,
            ContractorProfile.deleted_at.is_(None),
        )
        with self._session_factory() as session:
            row = session.execute(stmt).scalar_one_or_none()
            return ContractorRecord.from_orm_row(row) if row else None

    def state_counts(self) -> List[Tuple[str, int]]:
        """Active contractors per raw state value, most populated first."""
        stmt = (
            select(ContractorProfile.state, func.count(ContractorProfile.id))
            .where(ContractorProfile.deleted_at.is_(None), ContractorProfile.state.isnot(None))
            .group_by(ContractorProfile.state)
        )
        with self._session_factory() as session:
            return [(state, count) for state, count in session.execute(stmt).all()]


def fetch_page(
    repository: ContractorRepository,
    flt: ContractorFilter,
    limit: Optional[int],
    offset: int,
    parallel: bool = True,
) -> Tuple[List[ContractorRecord], int]:
    """
    Fetch one page of contractors and the total matching ``flt``.

    The total is the database-level count and ignores any later distance
    filtering.
    """
    if not parallel:
        return repository.find_many(flt, limit, offset), repository.count(flt)

    with ThreadPoolExecutor(max_workers=2) as executor:
        records_future = executor.submit(repository.find_many, flt, limit, offset)
        total_future = executor.submit(repository.count, flt)
        records = records_future.result()
        total = total_future.result()

    logger.debug("Fetched %d contractors (total=%d, offset=%d)", len(records), total, offset)
    return records, total
