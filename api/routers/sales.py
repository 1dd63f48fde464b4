"""
Sales API Endpoints.

Endpoints for submitting sales, listing them by scope and applying manager
decisions.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_session
from api.models import SaleListResponse, SaleResponse, SubmitSaleRequest, TransitionRequest
from services.aggregation_service import SaleScope
from services.session_service import SalesSession

router = APIRouter()


def parse_scope(scope: Optional[str], session: SalesSession) -> SaleScope:
    if not scope:
        return session.default_scope()
    try:
        return SaleScope(scope.lower())
    except ValueError:
        allowed = ", ".join(s.value for s in SaleScope)
        raise HTTPException(
            status_code=400,
            detail=f"Invalid scope. Must be one of {allowed}, got '{scope}'"
        )


@router.post(
    "/sales",
    response_model=SaleResponse,
    status_code=201,
    summary="Submit Sale",
    description="Submit a form for review, promoting a draft or resubmitting a returned sale."
)
def submit_sale(request: SubmitSaleRequest, session: SalesSession = Depends(get_session)):
    """
    Submit a customer enrollment.

    **Process:**
    1. Validates every required field (the whole submission is rejected on any failure)
    2. Writes the sale as EM_ANDAMENTO in the seller's partition
    3. Removes the promoted draft, when `sale_id` names one

    **Example request:**
    ```json
    {
      "sale_id": "TMP_AB12C",
      "customer_data": {"nome": "Maria da Silva", "cpf": "529.982.247-25"}
    }
    ```
    """
    sale = session.submit_sale(request.customer_data.to_domain(), sale_id=request.sale_id)
    return SaleResponse.from_domain(sale)


@router.get(
    "/sales",
    response_model=SaleListResponse,
    summary="List Sales",
    description="Sales visible to the caller in the requested scope, newest first."
)
def list_sales(
    scope: Optional[str] = Query(None, description="own, all, manager_queue, under_review, returned, approved, completed"),
    seller_id: Optional[str] = Query(None, description="Narrow manager scopes to one seller"),
    session: SalesSession = Depends(get_session),
):
    resolved = parse_scope(scope, session)
    sales = session.list_sales(resolved, seller_id=seller_id)
    return SaleListResponse(
        items=[SaleResponse.from_domain(s) for s in sales],
        total_count=len(sales),
        scope=resolved.value,
    )


@router.post(
    "/sales/{sale_id}/transition",
    response_model=SaleResponse,
    summary="Transition Sale",
    description="Approve, finalize or return a submitted sale (requires APPROVE_SALES)."
)
def transition_sale(
    sale_id: str,
    request: TransitionRequest,
    session: SalesSession = Depends(get_session),
):
    """
    Apply a manager decision.

    **Allowed moves:**
    - EM_ANDAMENTO -> ANALISADA (approve)
    - ANALISADA or EM_ANDAMENTO -> FINALIZADA (finalize)
    - ANALISADA or EM_ANDAMENTO -> EM_ANDAMENTO (return, `reason` of at least 5 characters)

    FINALIZADA sales cannot change.
    """
    updated = session.transition(
        sale_id,
        request.target_status,
        reason=request.reason,
        seller_id=request.seller_id,
    )
    return SaleResponse.from_domain(updated)
