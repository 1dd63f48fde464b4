"""
Aggregation view over every seller's sales.

Read-only and derived: nothing computed here is persisted. Each call scans all
`sales_` partitions (see SaleRepository.scan_all for the cost), then filters
by the caller's visibility and the requested scope.

Regression alerts are raised through an explicit RegressionMonitor, owned by
the session, so each regressed sale id alerts once per session.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from domain.sale import Sale, SaleStatus
from domain.time import utc_now
from domain.user import Actor, RolePermissionsMap, UserRole
from repositories.sale_repository import SaleRepository

logger = logging.getLogger(__name__)

TREND_DAYS: int = 7
TOP_SELLERS_LIMIT: int = 5


class SaleScope(str, Enum):
    OWN = "own"
    ALL = "all"
    MANAGER_QUEUE = "manager_queue"
    UNDER_REVIEW = "under_review"
    RETURNED = "returned"
    APPROVED = "approved"
    COMPLETED = "completed"


# Scopes that always look at the caller's own sales.
_PERSONAL_SCOPES = frozenset(
    {SaleScope.OWN, SaleScope.UNDER_REVIEW, SaleScope.RETURNED, SaleScope.APPROVED}
)

_SCOPE_FILTERS: Dict[SaleScope, Callable[[Sale], bool]] = {
    SaleScope.OWN: lambda s: True,
    SaleScope.ALL: lambda s: True,
    SaleScope.MANAGER_QUEUE: lambda s: not s.is_finished and not s.return_reason,
    SaleScope.UNDER_REVIEW: lambda s: s.status == SaleStatus.IN_PROGRESS and not s.return_reason,
    SaleScope.RETURNED: lambda s: s.is_returned,
    SaleScope.APPROVED: lambda s: s.is_finished,
    SaleScope.COMPLETED: lambda s: s.is_finished,
}


class RegressionMonitor:
    """
    Remembers which regressed sale ids were already reported.

    observe() returns only the sales that entered the regressed set since the
    last call; sales already seen stay silent across any number of polls.
    """

    def __init__(self, on_alert: Optional[Callable[[Sale], None]] = None) -> None:
        self._seen: Set[Tuple[str, str]] = set()
        self._on_alert = on_alert

    @property
    def seen(self) -> Set[Tuple[str, str]]:
        """(seller_id, sale_id) pairs already reported; ids are unique per seller only."""

        return set(self._seen)

    def observe(self, sales: Iterable[Sale]) -> List[Sale]:
        fresh: List[Sale] = []
        for sale in sales:
            key = (sale.seller_id, sale.id)
            if not sale.is_regressed or key in self._seen:
                continue
            self._seen.add(key)
            fresh.append(sale)

        for sale in fresh:
            logger.warning(
                "Sale regressed to in-progress after approval",
                extra={"sale_id": sale.id, "seller_id": sale.seller_id},
            )
            if self._on_alert is not None:
                self._on_alert(sale)
        return fresh

    def reset(self) -> None:
        self._seen.clear()


@dataclass(frozen=True, slots=True)
class TrendPoint:
    day: date
    count: int


@dataclass(frozen=True, slots=True)
class SellerRanking:
    seller_id: str
    seller_name: str
    finished: int


@dataclass(frozen=True, slots=True)
class DashboardStats:
    """
    Dashboard figures for one scope.

    conversion_rate: finished / total as a percentage, one decimal
    funnel: counts per status, statuses with zero sales omitted
    trend: sales created per UTC day, oldest first, last TREND_DAYS days
    top_sellers: by finished count; empty for seller scopes
    regressed_ids: sales currently regressed within the scope
    """

    total: int
    finished: int
    analyzing: int
    in_progress: int
    conversion_rate: float
    funnel: Dict[SaleStatus, int] = field(default_factory=dict)
    trend: List[TrendPoint] = field(default_factory=list)
    top_sellers: List[SellerRanking] = field(default_factory=list)
    regressed_ids: List[str] = field(default_factory=list)


def _newest_first(sales: List[Sale]) -> List[Sale]:
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(sales, key=lambda s: s.created_at or epoch, reverse=True)


def build_trend(sales: Iterable[Sale], today: date, days: int = TREND_DAYS) -> List[TrendPoint]:
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    counts = Counter(s.created_at.date() for s in sales if s.created_at is not None)
    return [TrendPoint(day=d, count=counts.get(d, 0)) for d in window]


def rank_sellers(sales: Iterable[Sale], limit: int = TOP_SELLERS_LIMIT) -> List[SellerRanking]:
    names: Dict[str, str] = {}
    finished: Counter = Counter()
    for sale in sales:
        names.setdefault(sale.seller_id, sale.seller_name)
        if sale.is_finished:
            finished[sale.seller_id] += 1

    ranking = [
        SellerRanking(seller_id=seller_id, seller_name=names[seller_id], finished=finished[seller_id])
        for seller_id in names
    ]
    ranking.sort(key=lambda r: (-r.finished, r.seller_name))
    return ranking[:limit]


class AggregationView:
    def __init__(
        self,
        sales: SaleRepository,
        *,
        permissions: Optional[RolePermissionsMap] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._sales = sales
        self._permissions = permissions
        self._clock = clock

    def load_submitted(self) -> List[Sale]:
        """Every non-draft sale across all partitions."""

        return [s for s in self._sales.scan_all() if not s.is_draft]

    def list_sales(
        self,
        actor: Actor,
        scope: SaleScope = SaleScope.OWN,
        *,
        seller_id: Optional[str] = None,
        monitor: Optional[RegressionMonitor] = None,
    ) -> List[Sale]:
        """
        Sales visible to `actor` within `scope`, newest first.

        Callers without VIEW_ALL_SALES only ever get their own sales,
        whatever scope or seller filter they ask for.
        """

        scope = SaleScope(scope)
        can_view_all = actor.can_view_all(self._permissions)

        submitted = self.load_submitted()
        if not can_view_all:
            submitted = [s for s in submitted if s.seller_id == actor.user_id]
        if monitor is not None:
            monitor.observe(submitted)

        owner: Optional[str]
        if can_view_all and seller_id:
            owner = seller_id
        elif scope in _PERSONAL_SCOPES:
            owner = actor.user_id
        else:
            owner = None

        keep = _SCOPE_FILTERS[scope]
        visible = [s for s in submitted if (owner is None or s.seller_id == owner) and keep(s)]
        return _newest_first(visible)

    def aggregate(
        self,
        actor: Actor,
        scope: SaleScope = SaleScope.OWN,
        *,
        seller_id: Optional[str] = None,
        monitor: Optional[RegressionMonitor] = None,
    ) -> DashboardStats:
        sales = self.list_sales(actor, scope, seller_id=seller_id, monitor=monitor)

        by_status = Counter(s.status for s in sales)
        total = len(sales)
        finished = by_status.get(SaleStatus.FINISHED, 0)
        conversion = round(finished / total * 100, 1) if total else 0.0

        funnel = {
            status: by_status[status]
            for status in (SaleStatus.IN_PROGRESS, SaleStatus.ANALYZED, SaleStatus.FINISHED)
            if by_status.get(status, 0) > 0
        }

        show_ranking = (
            actor.role != UserRole.SELLER
            and actor.can_view_all(self._permissions)
            and SaleScope(scope) not in _PERSONAL_SCOPES
        )

        return DashboardStats(
            total=total,
            finished=finished,
            analyzing=by_status.get(SaleStatus.ANALYZED, 0),
            in_progress=by_status.get(SaleStatus.IN_PROGRESS, 0),
            conversion_rate=conversion,
            funnel=funnel,
            trend=build_trend(sales, self._clock().date()),
            top_sellers=rank_sellers(sales) if show_ranking else [],
            regressed_ids=[s.id for s in sales if s.is_regressed],
        )


__all__ = [
    "DashboardStats",
    "SellerRanking",
    "TrendPoint",
    "RegressionMonitor",
    "SaleScope",
    "AggregationView",
    "build_trend",
    "rank_sellers",
]
