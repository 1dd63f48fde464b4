#!/usr/bin/env python3
"""
Remote Connection Check

Verifies that the configured Supabase project is reachable and that the
`vendas` table can be read (and, optionally, written and cleaned up).

Usage:
    python check_connection.py
    python check_connection.py --write-test
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Tuple

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.errors import RemoteUnavailable
from domain.time import to_iso_utc, to_epoch_ms, utc_now
from repositories.remote_mapper import SALES_TABLE
from repositories.remote_repository import RemoteStore, SupabaseRemoteStore
from services.config import load_config
from services.remote_calls import call_remote

CheckResult = Tuple[str, bool, str]


async def run_check(remote: RemoteStore, *, timeout: float, write_test: bool = False) -> List[CheckResult]:
    """
    Run the connection checks in order.

    Returns:
        (check name, passed, detail) for every check attempted. A failed
        probe stops the run.
    """

    results: List[CheckResult] = []

    try:
        status = await call_remote(remote.probe(), timeout=timeout, operation="connectivity probe")
    except RemoteUnavailable as exc:
        results.append(("probe", False, str(exc)))
        return results
    results.append(("probe", status.is_connected, status.error or "ok"))
    if not status.is_connected:
        return results

    try:
        rows = await call_remote(remote.select(SALES_TABLE, limit=1), timeout=timeout, operation="read vendas")
        results.append(("read vendas", True, f"{len(rows)} row(s)"))
    except RemoteUnavailable as exc:
        results.append(("read vendas", False, str(exc)))

    if write_test:
        now = utc_now()
        test_id = f"TEST_{to_epoch_ms(now)}"
        row = {
            "id": test_id,
            "seller_id": "test_user",
            "seller_name": "Teste",
            "status": "EM_ANDAMENTO",
            "status_history": [
                {"status": "EM_ANDAMENTO", "updatedBy": "Sistema", "updatedAt": to_iso_utc(now, name="now")}
            ],
        }
        try:
            await call_remote(remote.upsert(SALES_TABLE, row), timeout=timeout, operation="write vendas")
            results.append(("write vendas", True, test_id))
        except RemoteUnavailable as exc:
            results.append(("write vendas", False, str(exc)))
            return results

        try:
            await call_remote(
                remote.delete(SALES_TABLE, filters={"id": test_id}),
                timeout=timeout,
                operation="cleanup vendas",
            )
            results.append(("cleanup vendas", True, test_id))
        except RemoteUnavailable as exc:
            results.append(("cleanup vendas", False, str(exc)))

    return results


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Check connectivity to the remote Supabase store")
    parser.add_argument(
        "--write-test",
        action="store_true",
        help="Also insert and delete a throwaway row in vendas"
    )
    args = parser.parse_args()

    config = load_config()
    results = asyncio.run(
        run_check(SupabaseRemoteStore(), timeout=config.remote_timeout_seconds, write_test=args.write_test)
    )

    print("=" * 50)
    print("REMOTE CONNECTION CHECK")
    print("=" * 50)
    for name, passed, detail in results:
        print(f"{'OK  ' if passed else 'FAIL'} {name:<16} {detail}")
    print("=" * 50)

    return 0 if all(passed for _, passed, _ in results) else 1


if __name__ == "__main__":
    sys.exit(main())
