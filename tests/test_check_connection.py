"""
Tests for `scripts/check_connection.py`.

Covers contract rules:
- A failed probe stops the run after one result.
- The write test inserts a throwaway row and removes it again.
"""

from __future__ import annotations

import asyncio

from scripts.check_connection import run_check


def test_offline_stops_after_probe(remote) -> None:
    remote.connected = False

    results = asyncio.run(run_check(remote, timeout=0.5))

    assert results == [("probe", False, "offline")]


def test_slow_probe_times_out(remote) -> None:
    remote.delay = 0.5

    ((name, passed, detail),) = asyncio.run(run_check(remote, timeout=0.01))

    assert (name, passed) == ("probe", False)
    assert "timed out" in detail


def test_read_only_check(remote) -> None:
    results = asyncio.run(run_check(remote, timeout=0.5))

    assert [(name, passed) for name, passed, _ in results] == [("probe", True), ("read vendas", True)]
    assert remote.upserts == []


def test_write_test_cleans_up(remote) -> None:
    results = asyncio.run(run_check(remote, timeout=0.5, write_test=True))

    assert [name for name, _, _ in results] == ["probe", "read vendas", "write vendas", "cleanup vendas"]
    assert all(passed for _, passed, _ in results)
    assert results[2][2].startswith("TEST_")
    assert remote.tables["vendas"] == {}
