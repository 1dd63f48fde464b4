"""
Tests for `services/aggregation_service.py`.

Covers contract rules:
- Seller scopes never include other sellers' sales, whatever filter is asked for.
- Manager scopes span every partition; seller_id narrows them.
- A regressed sale alerts exactly once across repeated polls, until reset.
- Stats: conversion with one decimal, zero funnel buckets dropped, 7-day UTC
  trend, top sellers for manager scopes only.
- An unreadable partition is skipped, not fatal.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

import pytest

from domain.sale import CustomerData, Sale, SaleStatus, StatusHistoryEntry
from repositories.sale_repository import SaleRepository
from services.aggregation_service import (
    AggregationView,
    RegressionMonitor,
    SaleScope,
    build_trend,
    rank_sellers,
)

NOW = datetime(2025, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


def make_sale(
    sale_id: str,
    owner,
    *statuses: SaleStatus,
    created_at: datetime = NOW,
    return_reason: Optional[str] = None,
) -> Sale:
    history = tuple(
        StatusHistoryEntry(status=s, updated_by="x", updated_at=created_at + timedelta(minutes=i))
        for i, s in enumerate(statuses)
    )
    return Sale(
        id=sale_id,
        seller_id=owner.user_id,
        seller_name=owner.name,
        customer_data=CustomerData(nome=f"Cliente {sale_id}"),
        status=statuses[-1],
        status_history=history,
        created_at=created_at,
        return_reason=return_reason,
    )


IP, AN, FI = SaleStatus.IN_PROGRESS, SaleStatus.ANALYZED, SaleStatus.FINISHED


@pytest.fixture
def sales(store) -> SaleRepository:
    return SaleRepository(store)


@pytest.fixture
def view(sales, clock) -> AggregationView:
    return AggregationView(sales, clock=clock)


@pytest.fixture
def populated(sales, seller, other_seller) -> List[Sale]:
    rows = [
        make_sale("S1AAAAAAA", seller, IP, created_at=NOW - timedelta(days=2)),
        make_sale("S1BBBBBBB", seller, IP, AN, FI, created_at=NOW - timedelta(days=1)),
        make_sale("S1CCCCCCC", seller, IP, AN, IP, return_reason="cpf incorreto", created_at=NOW),
        make_sale("S2AAAAAAA", other_seller, IP, AN, created_at=NOW - timedelta(days=3)),
        make_sale("S2BBBBBBB", other_seller, IP, FI, created_at=NOW - timedelta(days=10)),
    ]
    for sale in rows:
        sales.upsert(sale)
    return rows


def ids(sales: List[Sale]) -> List[str]:
    return [s.id for s in sales]


class TestScopes:
    def test_seller_sees_only_own_sales(self, view, populated, seller) -> None:
        for scope in SaleScope:
            assert all(s.seller_id == seller.user_id for s in view.list_sales(seller, scope))

        assert view.list_sales(seller, SaleScope.ALL, seller_id="seller-2") == view.list_sales(seller, SaleScope.OWN)

    def test_all_scope_is_newest_first(self, view, populated, manager) -> None:
        assert ids(view.list_sales(manager, SaleScope.ALL)) == [
            "S1CCCCCCC", "S1BBBBBBB", "S1AAAAAAA", "S2AAAAAAA", "S2BBBBBBB",
        ]

    def test_manager_queue_excludes_finished_and_returned(self, view, populated, manager) -> None:
        assert ids(view.list_sales(manager, SaleScope.MANAGER_QUEUE)) == ["S1AAAAAAA", "S2AAAAAAA"]

    def test_seller_filter_narrows_manager_scope(self, view, populated, manager, other_seller) -> None:
        assert ids(view.list_sales(manager, SaleScope.ALL, seller_id=other_seller.user_id)) == [
            "S2AAAAAAA", "S2BBBBBBB",
        ]

    def test_seller_personal_scopes(self, view, populated, seller) -> None:
        assert ids(view.list_sales(seller, SaleScope.UNDER_REVIEW)) == ["S1AAAAAAA"]
        assert ids(view.list_sales(seller, SaleScope.RETURNED)) == ["S1CCCCCCC"]
        assert ids(view.list_sales(seller, SaleScope.APPROVED)) == ["S1BBBBBBB"]

    def test_completed_scope(self, view, populated, manager) -> None:
        assert ids(view.list_sales(manager, SaleScope.COMPLETED)) == ["S1BBBBBBB", "S2BBBBBBB"]

    @pytest.mark.parametrize(
        "payload",
        [
            b"{not json",
            b'["garbage"]',
            b'[{"id": "X", "sellerId": "broken", "status": "EM_ANDAMENTO", "customerData": [1]}]',
        ],
    )
    def test_corrupt_partition_is_skipped(self, view, populated, store, manager, payload) -> None:
        store.set("sales_broken", payload)

        assert len(view.list_sales(manager, SaleScope.ALL)) == 5


class TestRegressionMonitor:
    def test_alert_fires_once_across_polls(self, view, populated, manager) -> None:
        alerts: List[str] = []
        monitor = RegressionMonitor(on_alert=lambda s: alerts.append(s.id))

        for _ in range(5):
            view.list_sales(manager, SaleScope.MANAGER_QUEUE, monitor=monitor)

        assert alerts == ["S1CCCCCCC"]

    def test_detection_covers_sales_outside_the_scope(self, view, populated, seller) -> None:
        monitor = RegressionMonitor()
        view.list_sales(seller, SaleScope.UNDER_REVIEW, monitor=monitor)

        assert monitor.seen == {("seller-1", "S1CCCCCCC")}

    def test_seller_is_not_alerted_about_other_sellers(self, view, sales, populated, seller, other_seller) -> None:
        sales.upsert(make_sale("S2CCCCCCC", other_seller, IP, FI, IP, return_reason="erro no plano"))

        seller_monitor = RegressionMonitor()
        view.list_sales(seller, SaleScope.OWN, monitor=seller_monitor)

        assert seller_monitor.seen == {("seller-1", "S1CCCCCCC")}

    def test_same_id_under_two_sellers_alerts_twice(self, view, sales, populated, manager, other_seller) -> None:
        sales.upsert(make_sale("S1CCCCCCC", other_seller, IP, AN, IP, return_reason="erro no plano"))
        alerts: List[tuple] = []
        monitor = RegressionMonitor(on_alert=lambda s: alerts.append((s.seller_id, s.id)))

        view.list_sales(manager, SaleScope.ALL, monitor=monitor)
        view.list_sales(manager, SaleScope.ALL, monitor=monitor)

        assert sorted(alerts) == [("seller-1", "S1CCCCCCC"), ("seller-2", "S1CCCCCCC")]

    def test_reset_allows_a_new_alert(self, populated) -> None:
        monitor = RegressionMonitor()
        regressed = [s for s in populated if s.is_regressed]

        assert ids(monitor.observe(regressed)) == ["S1CCCCCCC"]
        assert monitor.observe(regressed) == []
        monitor.reset()
        assert ids(monitor.observe(regressed)) == ["S1CCCCCCC"]


class TestDashboardStats:
    def test_manager_stats(self, view, populated, manager) -> None:
        stats = view.aggregate(manager, SaleScope.ALL)

        assert stats.total == 5
        assert stats.finished == 2
        assert stats.analyzing == 1
        assert stats.in_progress == 2
        assert stats.conversion_rate == 40.0
        assert stats.funnel == {IP: 2, AN: 1, FI: 2}
        assert stats.regressed_ids == ["S1CCCCCCC"]
        assert [(r.seller_id, r.finished) for r in stats.top_sellers] == [("seller-2", 1), ("seller-1", 1)]

    def test_seller_stats_have_no_ranking(self, view, populated, seller) -> None:
        stats = view.aggregate(seller, SaleScope.OWN)

        assert stats.total == 3
        assert stats.conversion_rate == 33.3
        assert stats.top_sellers == []
        assert AN not in stats.funnel

    def test_empty_stats(self, view, seller) -> None:
        stats = view.aggregate(seller)

        assert stats.total == 0
        assert stats.conversion_rate == 0.0
        assert stats.funnel == {}
        assert len(stats.trend) == 7
        assert all(p.count == 0 for p in stats.trend)

    def test_trend_buckets_by_utc_day(self, view, populated, manager) -> None:
        trend = view.aggregate(manager, SaleScope.ALL).trend

        assert [p.day for p in trend] == [date(2025, 3, 4) + timedelta(days=i) for i in range(7)]
        assert {p.day: p.count for p in trend if p.count} == {
            date(2025, 3, 7): 1,
            date(2025, 3, 8): 1,
            date(2025, 3, 9): 1,
            date(2025, 3, 10): 1,
        }

    def test_trend_ignores_local_offsets(self, seller) -> None:
        late_evening_brt = datetime(2025, 3, 10, 2, 30, tzinfo=timezone.utc)
        sale = make_sale("TZ0000000", seller, IP, created_at=late_evening_brt)

        trend = build_trend([sale], date(2025, 3, 10), days=2)
        assert [(p.day, p.count) for p in trend] == [(date(2025, 3, 9), 0), (date(2025, 3, 10), 1)]

    def test_ranking_is_capped_at_five(self) -> None:
        class Owner:
            def __init__(self, n: int) -> None:
                self.user_id = f"s{n}"
                self.name = f"Vendedor {n}"

        rows = [make_sale(f"R{n:08d}", Owner(n), IP, FI) for n in range(7)]
        rows += [make_sale("R99999999", Owner(3), IP, FI)]

        ranking = rank_sellers(rows)

        assert len(ranking) == 5
        assert ranking[0].seller_id == "s3"
        assert ranking[0].finished == 2
