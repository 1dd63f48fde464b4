"""
Sync API Endpoints.

Manual trigger for pushing local sales to the remote store.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_session
from api.models import SyncReportResponse
from services.session_service import SalesSession

router = APIRouter()


@router.post(
    "/sync",
    response_model=SyncReportResponse,
    summary="Synchronize Now",
    description="Push the caller's visible sales to the remote store and report per-item outcomes."
)
async def sync_now(session: SalesSession = Depends(get_session)):
    """
    Run one synchronization pass.

    Per-item failures never abort the batch; they are counted in `failed`
    and retried on the next pass. Items that keep failing are parked and
    reported as `skipped`.
    """
    report = await session.sync_now()
    return SyncReportResponse.from_domain(report)
