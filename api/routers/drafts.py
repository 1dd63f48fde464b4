"""
Drafts API Endpoints.

Endpoints for listing, saving and deleting the caller's drafts.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_session
from api.models import DraftListResponse, DraftSaveRequest, DraftSaveResponse, SaleResponse
from services.session_service import SalesSession

router = APIRouter()


@router.get(
    "/drafts",
    response_model=DraftListResponse,
    summary="List Drafts",
    description="Unexpired drafts of the caller, newest first."
)
def list_drafts(session: SalesSession = Depends(get_session)):
    drafts = session.list_drafts()
    return DraftListResponse(
        items=[SaleResponse.from_domain(d) for d in drafts],
        total_count=len(drafts),
    )


@router.post(
    "/drafts",
    response_model=DraftSaveResponse,
    summary="Save Draft",
    description="Create or update a draft. Nothing is stored until `nome` or `cpf` is filled."
)
def save_draft(request: DraftSaveRequest, session: SalesSession = Depends(get_session)):
    """
    Save a partially filled form.

    **Rules:**
    - A draft expires 24 hours after it was first created; saving again does not extend it
    - Passing `draft_id` updates that draft in place; an unknown or expired id creates a new one
    """
    draft = session.save_draft(request.customer_data.to_domain(), draft_id=request.draft_id)
    if draft is None:
        return DraftSaveResponse(saved=False, message="Preencha nome ou CPF para salvar o rascunho.")
    return DraftSaveResponse(saved=True, draft=SaleResponse.from_domain(draft))


@router.delete(
    "/drafts/{draft_id}",
    summary="Delete Draft",
    description="Delete one of the caller's drafts immediately."
)
def delete_draft(draft_id: str, session: SalesSession = Depends(get_session)):
    if not session.delete_draft(draft_id):
        raise HTTPException(status_code=404, detail=f"Draft not found: {draft_id}")
    return {"deleted": True, "draft_id": draft_id}
