"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from domain.sale import CustomerData, Sale, SaleStatus
from services.aggregation_service import DashboardStats
from services.notification_service import Notification
from services.sync_service import SyncReport


# ============================================================================
# Customer / Sale Models
# ============================================================================

class CustomerDataModel(BaseModel):
    """Enrollment form fields. Every field may be blank on a draft."""
    nome: str = ""
    cpf: str = ""
    data_nascimento: str = ""
    nome_mae: str = ""
    contato: str = ""
    email: str = ""
    rua: str = ""
    numero: str = ""
    complemento: str = ""
    bairro: str = ""
    cidade: str = ""
    estado: str = ""
    cep: str = ""
    plano: str = ""
    vencimento_dia: int = Field(10, ge=1, le=31)
    anotacoes: str = ""
    audio_url: str = ""
    foto_frente_url: str = ""
    foto_verso_url: str = ""
    foto_ctps_url: str = ""
    foto_comprovante_residencia_url: str = ""

    class Config:
        json_schema_extra = {
            "example": {
                "nome": "Maria da Silva",
                "cpf": "529.982.247-25",
                "nome_mae": "Ana da Silva",
                "email": "maria@example.com",
                "cep": "01001-000",
                "rua": "Praça da Sé",
                "numero": "100",
                "plano": "Plano Família",
                "vencimento_dia": 10,
                "audio_url": "https://storage.example.com/vendas/u1/consent.webm"
            }
        }

    def to_domain(self) -> CustomerData:
        return CustomerData.from_mapping(self.model_dump())


class StatusHistoryEntryResponse(BaseModel):
    status: SaleStatus
    updated_by: str
    updated_at: datetime
    reason: Optional[str] = None


class SaleResponse(BaseModel):
    """Sale or draft as returned by the API."""
    id: str
    seller_id: str
    seller_name: str
    status: SaleStatus
    customer_data: CustomerDataModel
    status_history: List[StatusHistoryEntryResponse]
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    return_reason: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "K3V9QX2LM",
                "seller_id": "seller-1",
                "seller_name": "João Vendedor",
                "status": "EM_ANDAMENTO",
                "customer_data": {"nome": "Maria da Silva"},
                "status_history": [
                    {
                        "status": "EM_ANDAMENTO",
                        "updated_by": "João Vendedor",
                        "updated_at": "2025-01-01T12:00:00Z",
                        "reason": None
                    }
                ],
                "created_at": "2025-01-01T12:00:00Z",
                "expires_at": None,
                "return_reason": None
            }
        }

    @classmethod
    def from_domain(cls, sale: Sale) -> "SaleResponse":
        return cls(
            id=sale.id,
            seller_id=sale.seller_id,
            seller_name=sale.seller_name,
            status=sale.status,
            customer_data=CustomerDataModel(**sale.customer_data.as_dict()),
            status_history=[
                StatusHistoryEntryResponse(
                    status=e.status,
                    updated_by=e.updated_by,
                    updated_at=e.updated_at,
                    reason=e.reason,
                )
                for e in sale.status_history
            ],
            created_at=sale.created_at,
            expires_at=sale.expires_at,
            return_reason=sale.return_reason,
        )


class SaleListResponse(BaseModel):
    """Response for sale listings."""
    items: List[SaleResponse]
    total_count: int
    scope: str


# ============================================================================
# Draft Models
# ============================================================================

class DraftSaveRequest(BaseModel):
    """Create a draft, or update the draft named by draft_id."""
    customer_data: CustomerDataModel
    draft_id: Optional[str] = Field(None, description="Existing draft id (TMP_...)")


class DraftSaveResponse(BaseModel):
    saved: bool
    draft: Optional[SaleResponse] = None
    message: Optional[str] = None


class DraftListResponse(BaseModel):
    items: List[SaleResponse]
    total_count: int


# ============================================================================
# Workflow Models
# ============================================================================

class SubmitSaleRequest(BaseModel):
    """Submit a form; sale_id promotes a draft (TMP_...) or resubmits a returned sale."""
    customer_data: CustomerDataModel
    sale_id: Optional[str] = None


class TransitionRequest(BaseModel):
    """Manager decision on a submitted sale."""
    target_status: SaleStatus
    reason: Optional[str] = Field(None, description="Required (>= 5 characters) when returning a sale")
    seller_id: Optional[str] = Field(None, description="Owning seller, when the id is not unique")

    class Config:
        json_schema_extra = {
            "example": {
                "target_status": "EM_ANDAMENTO",
                "reason": "cpf incorreto"
            }
        }


# ============================================================================
# Dashboard Models
# ============================================================================

class TrendPointResponse(BaseModel):
    day: date
    count: int


class SellerRankingResponse(BaseModel):
    seller_id: str
    seller_name: str
    finished: int


class DashboardStatsResponse(BaseModel):
    total: int
    finished: int
    analyzing: int
    in_progress: int
    conversion_rate: float
    funnel: Dict[str, int]
    trend: List[TrendPointResponse]
    top_sellers: List[SellerRankingResponse]
    regressed_ids: List[str]

    @classmethod
    def from_domain(cls, stats: DashboardStats) -> "DashboardStatsResponse":
        return cls(
            total=stats.total,
            finished=stats.finished,
            analyzing=stats.analyzing,
            in_progress=stats.in_progress,
            conversion_rate=stats.conversion_rate,
            funnel={status.value: count for status, count in stats.funnel.items()},
            trend=[TrendPointResponse(day=p.day, count=p.count) for p in stats.trend],
            top_sellers=[
                SellerRankingResponse(seller_id=r.seller_id, seller_name=r.seller_name, finished=r.finished)
                for r in stats.top_sellers
            ],
            regressed_ids=list(stats.regressed_ids),
        )


class NotificationResponse(BaseModel):
    id: str
    message: str
    type: str
    timestamp: datetime

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            message=notification.message,
            type=notification.type.value,
            timestamp=notification.timestamp,
        )


# ============================================================================
# Sync Models
# ============================================================================

class SyncErrorResponse(BaseModel):
    sale_id: str
    error: str


class SyncReportResponse(BaseModel):
    succeeded: int
    failed: int
    skipped: int
    errors: List[SyncErrorResponse]

    class Config:
        json_schema_extra = {
            "example": {
                "succeeded": 2,
                "failed": 1,
                "skipped": 0,
                "errors": [{"sale_id": "K3V9QX2LM", "error": "sync sale K3V9QX2LM timed out after 5.0s"}]
            }
        }

    @classmethod
    def from_domain(cls, report: SyncReport) -> "SyncReportResponse":
        return cls(
            succeeded=report.succeeded,
            failed=report.failed,
            skipped=report.skipped,
            errors=[SyncErrorResponse(sale_id=sale_id, error=error) for sale_id, error in report.errors],
        )


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int
    fields: Dict[str, str] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "error": "validation_failed",
                "detail": "Campos obrigatórios pendentes ou inválidos: plano",
                "status_code": 422,
                "fields": {"plano": "Obrigatório"}
            }
        }
