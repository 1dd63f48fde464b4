"""
Domain: Enrollment form validation (pure).

A submission is accepted only when every required field passes. Validation is
field-scoped: the result maps field name -> message, empty when valid. No I/O,
no side effects.

Rules:
- nome, nome_mae: more than 3 characters after trimming.
- cpf: an 11-digit CPF or 14-digit CNPJ with valid check digits
  (punctuation ignored).
- email: syntactically valid address.
- cep, rua, numero, plano: non-empty.
- audio_url: consent recording must be attached.
"""

from __future__ import annotations

import re
from typing import Dict, Sequence

from .errors import ValidationFailure
from .sale import CustomerData

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NON_DIGIT_RE = re.compile(r"[^\d]")

_CNPJ_WEIGHTS_1: Sequence[int] = (5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)
_CNPJ_WEIGHTS_2: Sequence[int] = (6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)

REQUIRED_MESSAGE = "Obrigatório"


def only_digits(value: str) -> str:
    return _NON_DIGIT_RE.sub("", value or "")


def is_valid_cpf(value: str) -> bool:
    digits = [int(c) for c in only_digits(value)]
    if len(digits) != 11 or len(set(digits)) == 1:
        return False

    for position in (9, 10):
        total = sum(d * (position + 1 - i) for i, d in enumerate(digits[:position]))
        check = (total * 10) % 11
        if check == 10:
            check = 0
        if check != digits[position]:
            return False
    return True


def is_valid_cnpj(value: str) -> bool:
    digits = [int(c) for c in only_digits(value)]
    if len(digits) != 14 or len(set(digits)) == 1:
        return False

    for weights in (_CNPJ_WEIGHTS_1, _CNPJ_WEIGHTS_2):
        position = len(weights)
        remainder = sum(d * w for d, w in zip(digits[:position], weights)) % 11
        check = 0 if remainder < 2 else 11 - remainder
        if check != digits[position]:
            return False
    return True


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match((value or "").strip()))


def validate_customer_data(data: CustomerData) -> Dict[str, str]:
    """Return field -> message for every failing field (empty dict when the form is valid)."""

    errors: Dict[str, str] = {}

    if len(data.nome.strip()) <= 3:
        errors["nome"] = "Nome muito curto"
    if len(data.nome_mae.strip()) <= 3:
        errors["nome_mae"] = "Nome muito curto"

    document = only_digits(data.cpf)
    if not document:
        errors["cpf"] = REQUIRED_MESSAGE
    elif len(document) == 11:
        if not is_valid_cpf(document):
            errors["cpf"] = "CPF Inválido"
    elif len(document) == 14:
        if not is_valid_cnpj(document):
            errors["cpf"] = "CNPJ Inválido"
    else:
        errors["cpf"] = "CPF/CNPJ Inválido"

    if not data.email.strip():
        errors["email"] = REQUIRED_MESSAGE
    elif not is_valid_email(data.email):
        errors["email"] = "Formato de e-mail inválido"

    for name in ("plano", "cep", "rua", "numero"):
        if not getattr(data, name).strip():
            errors[name] = REQUIRED_MESSAGE

    if not data.audio_url.strip():
        errors["audio_url"] = "Gravação de áudio obrigatória"

    return errors


def require_valid(data: CustomerData) -> None:
    """Raise ValidationFailure listing every failing field."""

    errors = validate_customer_data(data)
    if errors:
        raise ValidationFailure(errors)
