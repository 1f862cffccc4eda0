"""Posting aggregates and account balances.

Every posting contributes to eight aggregate rows of its dimension: one per
period (month, quarter, half-year, year) and date basis (booking, valuta).
Bank postings also move the cached balance of their account. Both are kept
current on every booking and can be rebuilt from the posting ledger.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Callable, Optional, Protocol

from bookit.config import rebuild_batch_size
from bookit.database.base import Database
from bookit.domain import periods
from bookit.domain.entities import (
    AggregateKey,
    AggregatePeriod,
    AggregatePoint,
    DateBasis,
    Posting,
    PostingKind,
    RebuildResult,
    SecurityPostingSubType,
)
from bookit.domain.errors import NotFoundError, RebuildFailedError
from bookit.logging_config import get_logger

logger = get_logger("aggregation")

ProgressCallback = Callable[[int, int], None]


class CancelToken(Protocol):
    """Anything with ``is_set()``, such as ``threading.Event``."""

    def is_set(self) -> bool: ...


def aggregate_keys(posting: Posting) -> list[AggregateKey]:
    """Return the keys of every aggregate row a posting contributes to."""
    return [
        AggregateKey(
            dimension=posting.dimension,
            security_sub_type=posting.security_sub_type,
            period=period,
            period_start=start,
            date_basis=basis,
        )
        for period, start, basis in periods.buckets(posting)
    ]


class PostingAggregationService:
    """Maintains posting aggregates and account balances."""

    def __init__(self, db: Database):
        """Initialize aggregation service.

        Args:
            db: Database instance
        """
        self.db = db

    def upsert_for_posting(self, posting: Posting) -> None:
        """Add a posting's amount to all of its aggregate rows.

        Rows are created on first use. Zero amounts change nothing and create
        no rows. Run inside the booking transaction so the rows commit with
        the posting.
        """
        if posting.amount == 0:
            return
        for key in aggregate_keys(posting):
            self.db.add_to_aggregate(key, posting.amount)

    def adjust_balance_for_posting(self, posting: Posting) -> None:
        """Move the account balance by a Bank posting's amount."""
        if posting.kind != PostingKind.BANK or posting.amount == 0:
            return
        self.db.adjust_account_balance(posting.dimension.id, posting.amount)

    def _owned_dimension_ids(self, owner_id: int) -> dict[PostingKind, list[int]]:
        return {
            PostingKind.BANK: [a.id for a in self.db.list_accounts(owner_id)],
            PostingKind.CONTACT: [c.id for c in self.db.list_contacts(owner_id)],
            PostingKind.SAVINGS_PLAN: [p.id for p in self.db.list_savings_plans(owner_id)],
            PostingKind.SECURITY: [s.id for s in self.db.list_securities(owner_id)],
        }

    def rebuild_for_user(
        self,
        owner_id: int,
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancelToken] = None,
        batch_size: Optional[int] = None,
    ) -> RebuildResult:
        """Recompute all aggregates and account balances of an owner from postings.

        Existing aggregate rows are deleted first. New rows are written in
        batches, one transaction per batch; ``progress(processed, total)`` is
        called after each batch and ``cancel`` is checked between batches.
        A cancelled rebuild leaves the batches written so far and skips the
        balance recomputation; run it again to complete.

        Args:
            owner_id: Owning user
            progress: Optional callback receiving (processed, total) row counts
            cancel: Optional token; the rebuild stops when ``cancel.is_set()``
            batch_size: Rows per batch, defaults to BOOKIT_REBUILD_BATCH_SIZE

        Returns:
            RebuildResult with counters

        Raises:
            RebuildFailedError: If writing a batch fails
        """
        if batch_size is None:
            batch_size = rebuild_batch_size()
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        dimension_ids = self._owned_dimension_ids(owner_id)
        deleted = self.db.delete_aggregates_for_dimensions(dimension_ids)
        logger.info(
            "Aggregate rebuild started",
            extra={"owner_id": owner_id, "deleted_rows": deleted},
        )

        totals: dict[AggregateKey, Decimal] = defaultdict(Decimal)
        for posting in self.db.iter_postings_for_dimensions(dimension_ids):
            if posting.amount == 0:
                continue
            for key in aggregate_keys(posting):
                totals[key] += posting.amount

        rows = [(key, amount) for key, amount in totals.items() if amount != 0]
        total = len(rows)
        processed = 0
        if progress is not None:
            progress(processed, total)

        for start in range(0, total, batch_size):
            if cancel is not None and cancel.is_set():
                logger.warning(
                    "Aggregate rebuild cancelled",
                    extra={"owner_id": owner_id, "processed": processed, "total": total},
                )
                return RebuildResult(processed, total, cancelled=True, balances_updated=0)
            batch = rows[start : start + batch_size]
            try:
                with self.db.transaction():
                    self.db.insert_aggregates(batch)
            except Exception as e:
                logger.exception(
                    "Aggregate rebuild failed",
                    extra={"owner_id": owner_id, "processed": processed, "total": total},
                )
                raise RebuildFailedError(
                    f"Aggregate rebuild failed after {processed} of {total} rows: {e}",
                    processed=processed,
                    total=total,
                ) from e
            processed += len(batch)
            if progress is not None:
                progress(processed, total)

        balances_updated = self.recompute_balances(owner_id, dimension_ids[PostingKind.BANK])
        logger.info(
            "Aggregate rebuild finished",
            extra={
                "owner_id": owner_id,
                "rows": total,
                "balances_updated": balances_updated,
            },
        )
        return RebuildResult(processed, total, cancelled=False, balances_updated=balances_updated)

    def recompute_balances(self, owner_id: int, account_ids: Optional[list[int]] = None) -> int:
        """Set each account balance to the sum of its Bank postings.

        Only accounts whose balance actually differs are written.

        Returns:
            Number of accounts updated
        """
        accounts = {a.id: a for a in self.db.list_accounts(owner_id)}
        if account_ids is None:
            account_ids = list(accounts)
        sums = self.db.sum_postings_by_dimension(PostingKind.BANK, account_ids)
        updated = 0
        with self.db.transaction():
            for account_id, expected in sums.items():
                if accounts[account_id].current_balance != expected:
                    self.db.set_account_balance(account_id, expected)
                    updated += 1
        return updated

    def get_time_series(
        self,
        owner_id: int,
        kind: PostingKind,
        period: AggregatePeriod,
        date_basis: DateBasis = DateBasis.BOOKING,
        dimension_id: Optional[int] = None,
        security_sub_type: Optional[SecurityPostingSubType] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[AggregatePoint]:
        """Read an aggregate time series, ascending by period start.

        Without ``dimension_id`` the series sums over every dimension of the
        kind the owner has. For securities without ``security_sub_type`` all
        sub-types are summed.

        Raises:
            NotFoundError: If ``dimension_id`` is not owned by the owner
        """
        owned = self._owned_dimension_ids(owner_id)[kind]
        if dimension_id is not None:
            if dimension_id not in owned:
                raise NotFoundError(f"{kind.value} {dimension_id} not found")
            owned = [dimension_id]

        range_start = periods.period_start(start, period) if start is not None else None
        rows = self.db.list_aggregates(
            kind,
            owned,
            period=period,
            date_basis=date_basis,
            security_sub_type=security_sub_type,
            start=range_start,
            end=end,
        )
        series: dict[date, Decimal] = defaultdict(Decimal)
        for row in rows:
            series[row.period_start] += row.amount
        return [AggregatePoint(day, amount) for day, amount in sorted(series.items())]
