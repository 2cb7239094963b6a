import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from finance.allocation import CreditPaymentError, PersistenceFailure
from sales.cart import CartError

logger = logging.getLogger(__name__)


def _validation_payload(exc: DjangoValidationError) -> dict:
    if hasattr(exc, "error_dict"):
        errors = {field: [str(message) for message in messages] for field, messages in exc.message_dict.items()}
        first = next(iter(errors.values()), [""])
        return {"detail": first[0] if first else "", "errors": errors}
    return {"detail": " ".join(str(message) for message in exc.messages)}


def exception_handler(exc, context):
    """
    Converte as exceções de regra de negócio em respostas JSON com ``detail``.

    Falhas de gravação do crediário voltam como 409 com ``retryable`` para o
    cliente repetir a operação.
    """
    if isinstance(exc, PersistenceFailure):
        return Response(
            {"detail": exc.message, "retryable": True},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, CreditPaymentError):
        return Response({"detail": exc.message, "retryable": exc.retryable}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, CartError):
        return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, DjangoValidationError):
        return Response(_validation_payload(exc), status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, ProtectedError):
        logger.info("exclusão bloqueada por vínculos: %s", exc)
        return Response(
            {"detail": "Registro possui vínculos e não pode ser excluído."},
            status=status.HTTP_400_BAD_REQUEST,
        )
    return drf_exception_handler(exc, context)
