from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction

from .models import Store, UserRoleAssignment, UserStoreAccess
from .roles import Role, forget_roles

logger = logging.getLogger(__name__)


def assign_role(user, role, *, actor=None) -> tuple[UserRoleAssignment, bool]:
    role = Role(role)
    assignment, created = UserRoleAssignment.objects.get_or_create(
        user=user,
        role=role,
        defaults={"assigned_by": actor if getattr(actor, "is_authenticated", False) else None},
    )
    forget_roles(user)
    if created:
        logger.info("usuário %s recebeu a função %s", user.get_username(), role.value)
    return assignment, created


def ensure_not_last_admin(user) -> None:
    admin_ids = list(
        UserRoleAssignment.objects.select_for_update()
        .filter(role=Role.ADMIN, user__is_active=True)
        .values_list("user_id", flat=True)
    )
    if admin_ids == [user.pk]:
        raise ValidationError("Não é possível remover o último administrador.")


@transaction.atomic
def revoke_role(user, role, *, actor=None) -> bool:
    """Remove ``role`` from ``user``; the last active administrator is kept."""
    role = Role(role)
    if role == Role.ADMIN:
        ensure_not_last_admin(user)
    deleted, _ = UserRoleAssignment.objects.filter(user=user, role=role).delete()
    forget_roles(user)
    if deleted:
        logger.info(
            "usuário %s perdeu a função %s (por %s)",
            user.get_username(),
            role.value,
            actor.get_username() if actor else "-",
        )
    return bool(deleted)


def resolve_stores(codes) -> list[Store]:
    stores = []
    for code in codes:
        store = Store.objects.filter(code=(code or "").strip().upper()).first()
        if not store:
            raise ValidationError(f"Loja '{code}' não encontrada.")
        stores.append(store)
    return stores


def grant_store_access(user, stores) -> list[Store]:
    granted = []
    for store in stores:
        _, created = UserStoreAccess.objects.get_or_create(user=user, store=store)
        if created:
            granted.append(store)
    return granted


@transaction.atomic
def set_store_access(user, stores) -> list[Store]:
    """Replace the stores ``user`` may work in with exactly ``stores``."""
    stores = list(stores)
    UserStoreAccess.objects.filter(user=user).exclude(store__in=stores).delete()
    grant_store_access(user, stores)
    return stores


@transaction.atomic
def create_user_account(username, password, *, roles=(), store_codes=(), actor=None, **profile):
    """Create a login already activated with ``roles`` and allowed into ``store_codes``."""
    stores = resolve_stores(store_codes)
    user = get_user_model().objects.create_user(username, password=password, **profile)
    for role in roles:
        assign_role(user, role, actor=actor)
    grant_store_access(user, stores)
    logger.info(
        "usuário %s criado por %s com funções %s",
        username,
        actor.get_username() if actor else "-",
        ", ".join(sorted(Role(role).value for role in roles)) or "-",
    )
    return user


@transaction.atomic
def deactivate_user(user, *, actor=None) -> None:
    if UserRoleAssignment.objects.filter(user=user, role=Role.ADMIN).exists():
        ensure_not_last_admin(user)
    user.is_active = False
    user.save(update_fields=["is_active"])
    logger.warning("usuário %s desativado por %s", user.get_username(), actor.get_username() if actor else "-")
