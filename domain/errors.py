"""
Domain errors for the sales intake workflow.

None of these are fatal to the process: each one describes a narrower,
recoverable state that callers surface (validation, guards) or absorb
(cache decode, remote unavailability).
"""

from __future__ import annotations

from typing import Mapping


class SalesWorkflowError(Exception):
    """Base class for every error raised by the intake engine."""


class ValidationFailure(SalesWorkflowError):
    """Submitted form failed field validation. Nothing was persisted."""

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Campos obrigatórios pendentes ou inválidos: {fields}")


class WorkflowGuardFailure(SalesWorkflowError):
    """A transition precondition does not hold. Nothing was persisted."""

    def __init__(self, message: str, *, code: str = "guard") -> None:
        self.code = code
        super().__init__(message)


class ImmutableSaleError(WorkflowGuardFailure):
    """The sale is FINISHED and can no longer change."""

    def __init__(self, sale_id: str) -> None:
        super().__init__(f"Venda #{sale_id} está finalizada e não pode ser alterada.", code="immutable")


class SaleNotFoundError(SalesWorkflowError, LookupError):
    pass


class AmbiguousSaleError(SalesWorkflowError):
    """Sale ids are unique per seller only; the caller must name the owning seller."""


class CacheDecodeFailure(SalesWorkflowError):
    """Obfuscated draft cache could not be decoded (corrupt, tampered or wrong key)."""


class StoreCorruptedError(SalesWorkflowError):
    """A plaintext sale partition holds data that cannot be parsed."""


class RemoteUnavailable(SalesWorkflowError):
    """Remote store timed out or reported a connectivity error."""


__all__ = [
    "SalesWorkflowError",
    "ValidationFailure",
    "WorkflowGuardFailure",
    "ImmutableSaleError",
    "SaleNotFoundError",
    "AmbiguousSaleError",
    "CacheDecodeFailure",
    "StoreCorruptedError",
    "RemoteUnavailable",
]
