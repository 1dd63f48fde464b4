"""
Tests for `domain/validation.py`.

Covers contract rules:
- Names need more than 3 trimmed characters.
- cpf holds a checksum-valid CPF (11 digits) or CNPJ (14 digits); punctuation ignored.
- email must be syntactically valid; address, plan and consent recording are required.
- require_valid rejects the whole form, listing every failing field.
"""

from __future__ import annotations

import pytest

from domain.errors import ValidationFailure
from domain.validation import (
    is_valid_cnpj,
    is_valid_cpf,
    is_valid_email,
    require_valid,
    validate_customer_data,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("529.982.247-25", True),
        ("52998224725", True),
        ("529.982.247-24", False),
        ("111.111.111-11", False),
        ("1234", False),
    ],
)
def test_cpf_checksum(value: str, expected: bool) -> None:
    assert is_valid_cpf(value) is expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("11.222.333/0001-81", True),
        ("11222333000181", True),
        ("11.222.333/0001-80", False),
        ("00.000.000/0000-00", False),
    ],
)
def test_cnpj_checksum(value: str, expected: bool) -> None:
    assert is_valid_cnpj(value) is expected


def test_email_syntax() -> None:
    assert is_valid_email("maria@example.com")
    assert not is_valid_email("maria@example")
    assert not is_valid_email("maria example@x.com")


def test_valid_form_has_no_errors(valid_customer) -> None:
    assert validate_customer_data(valid_customer) == {}
    require_valid(valid_customer)


def test_cnpj_is_accepted_in_cpf_field(valid_customer) -> None:
    assert validate_customer_data(valid_customer.with_updates(cpf="11.222.333/0001-81")) == {}


def test_each_failing_field_is_reported(valid_customer) -> None:
    data = valid_customer.with_updates(
        nome="Ana",
        nome_mae=" ",
        cpf="529.982.247-24",
        email="not-an-email",
        plano="",
        audio_url="",
    )

    errors = validate_customer_data(data)

    assert errors == {
        "nome": "Nome muito curto",
        "nome_mae": "Nome muito curto",
        "cpf": "CPF Inválido",
        "email": "Formato de e-mail inválido",
        "plano": "Obrigatório",
        "audio_url": "Gravação de áudio obrigatória",
    }


def test_tax_id_of_unknown_length(valid_customer) -> None:
    assert validate_customer_data(valid_customer.with_updates(cpf="123.456"))["cpf"] == "CPF/CNPJ Inválido"
    assert validate_customer_data(valid_customer.with_updates(cpf=""))["cpf"] == "Obrigatório"


def test_require_valid_raises_with_all_fields(valid_customer) -> None:
    with pytest.raises(ValidationFailure) as exc_info:
        require_valid(valid_customer.with_updates(plano="", cep=""))

    assert set(exc_info.value.errors) == {"plano", "cep"}
    assert "plano" in str(exc_info.value)
