"""
Importação de contas a pagar a partir de planilhas CSV.

Colunas reconhecidas: nome_fornecedor, cnpj_cpf, descricao, valor, vencimento,
tipo_pagamento, centro_custo e dados_pagamento. Fornecedores e centros de custo
que ainda não existem são cadastrados durante a importação.
"""
from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from datetime import datetime
from io import StringIO

from django.core.exceptions import ValidationError
from django.db import transaction

from core.utils.documents import CNPJ, guess_document_type, only_digits
from core.utils.money import parse_decimal, quantize_money
from products.models import Supplier

from .models import AccountPayable, CostCenter
from .services import create_account_payable

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("descricao", "valor", "vencimento")
DATE_FORMATS = ("%d/%m/%Y", "%Y-%m-%d")

PAYMENT_TYPES = {
    "boleto": AccountPayable.PaymentType.BOLETO,
    "pix": AccountPayable.PaymentType.PIX,
    "transferencia": AccountPayable.PaymentType.TRANSFERENCIA,
    "transferência": AccountPayable.PaymentType.TRANSFERENCIA,
    "cartao": AccountPayable.PaymentType.CARTAO,
    "cartão": AccountPayable.PaymentType.CARTAO,
}


class RowError(Exception):
    pass


@dataclass
class PayableImportResult:
    success: int = 0
    errors: list = field(default_factory=list)
    created_suppliers: list = field(default_factory=list)
    created_cost_centers: list = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "errors": self.errors,
            "created_suppliers": self.created_suppliers,
            "created_cost_centers": self.created_cost_centers,
        }


def _decode(upload) -> str:
    raw = upload.read() if hasattr(upload, "read") else upload
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def _reader(text: str) -> csv.DictReader:
    first_line = text.splitlines()[0] if text else ""
    delimiter = ";" if first_line.count(";") > first_line.count(",") else ","
    return csv.DictReader(StringIO(text), delimiter=delimiter)


def _cell(row: dict, name: str) -> str:
    return (row.get(name) or "").strip()


def parse_csv_date(value: str):
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise RowError(f"Data de vencimento inválida: {value}")


def parse_csv_amount(value: str):
    amount = parse_decimal(value.replace("R$", "").strip())
    if amount is None or not amount.is_finite() or amount <= 0:
        raise RowError(f"Valor inválido: {value}")
    return quantize_money(amount)


def _resolve_supplier(name: str, document: str, result: PayableImportResult):
    if not name and not document:
        return None
    digits = only_digits(document)
    if digits:
        supplier = Supplier.objects.filter(document=digits).first()
        if supplier:
            return supplier
    if name:
        supplier = Supplier.objects.filter(name__iexact=name).first()
        if supplier:
            return supplier
    document_type = guess_document_type(digits)
    if document_type is None:
        raise RowError(f"Informe um CPF ou CNPJ válido para cadastrar o fornecedor {name or digits}.")
    person_type = Supplier.PersonType.LEGAL if document_type == CNPJ else Supplier.PersonType.INDIVIDUAL
    supplier = Supplier.objects.create(name=name or digits, document=digits, person_type=person_type)
    result.created_suppliers.append(supplier.name)
    return supplier


def _cost_center_code(name: str) -> str:
    letters = "".join(char for char in name if char.isalpha())[:3].upper() or "CC"
    code, suffix = letters, 1
    while CostCenter.objects.filter(code=code).exists():
        suffix += 1
        code = f"{letters}{suffix}"
    return code


def _resolve_cost_center(name: str, result: PayableImportResult):
    if not name:
        return None
    cost_center = CostCenter.objects.filter(name__iexact=name).first()
    if cost_center:
        return cost_center
    cost_center = CostCenter.objects.create(code=_cost_center_code(name), name=name)
    result.created_cost_centers.append(cost_center.name)
    return cost_center


def _import_row(row: dict, result: PayableImportResult, actor) -> AccountPayable:
    if any(not _cell(row, column) for column in REQUIRED_COLUMNS):
        raise RowError("Campos obrigatórios não preenchidos")
    amount = parse_csv_amount(_cell(row, "valor"))
    due_date = parse_csv_date(_cell(row, "vencimento"))
    payment_type = PAYMENT_TYPES.get(_cell(row, "tipo_pagamento").lower(), AccountPayable.PaymentType.BOLETO)
    payment_data = _cell(row, "dados_pagamento")

    cost_center = _resolve_cost_center(_cell(row, "centro_custo"), result)
    supplier = _resolve_supplier(_cell(row, "nome_fornecedor"), _cell(row, "cnpj_cpf"), result)

    fields = {
        "description": _cell(row, "descricao"),
        "amount": amount,
        "due_date": due_date,
        "payment_type": payment_type,
        "supplier": supplier,
        "cost_center": cost_center,
    }
    if payment_type == AccountPayable.PaymentType.PIX:
        fields["pix_key"] = payment_data
    elif payment_type == AccountPayable.PaymentType.BOLETO:
        fields["barcode"] = payment_data
    elif payment_data:
        fields["observations"] = payment_data
    return create_account_payable(actor=actor, **fields)


def import_payables_csv(upload, *, actor=None) -> PayableImportResult:
    """
    Create one payable per CSV row.

    Each row is saved in its own transaction: a bad row is reported with its
    line number and does not undo the rows imported before it.
    """
    reader = _reader(_decode(upload))
    if not reader.fieldnames or not set(REQUIRED_COLUMNS).issubset({name.strip() for name in reader.fieldnames}):
        raise ValidationError(
            {"file": "CSV inválido. Campos obrigatórios: " + ", ".join(REQUIRED_COLUMNS) + "."}
        )
    reader.fieldnames = [name.strip() for name in reader.fieldnames]

    result = PayableImportResult()
    for idx, row in enumerate(reader, start=2):
        created_suppliers = list(result.created_suppliers)
        created_cost_centers = list(result.created_cost_centers)
        try:
            with transaction.atomic():
                _import_row(row, result, actor)
        except RowError as exc:
            error = str(exc)
        except ValidationError as exc:
            error = "; ".join(exc.messages)
        else:
            result.success += 1
            continue
        # a linha com erro foi desfeita, inclusive os cadastros que ela criou
        result.created_suppliers = created_suppliers
        result.created_cost_centers = created_cost_centers
        result.errors.append({"row": idx, "error": error})

    logger.info(
        "contas-a-pagar: importação CSV com %s contas criadas e %s linhas com erro",
        result.success,
        len(result.errors),
    )
    return result
