"""Closed role enumeration and the capabilities each role grants.

Every permission check in the project goes through :func:`has_capability`;
role codes are never compared as free strings outside this module.
"""

from __future__ import annotations

import enum
from typing import FrozenSet, Iterable

from django.db import models


class Role(models.TextChoices):
	ADMIN = 'admin', 'Administrador'
	PAGADOR = 'pagador', 'Pagador'
	OPERADOR = 'operador', 'Operador'
	LEITOR = 'leitor', 'Leitor'


class Capability(str, enum.Enum):
	VIEW_CATALOG = 'view_catalog'
	MANAGE_CATALOG = 'manage_catalog'
	MANAGE_STOCK = 'manage_stock'
	VIEW_CUSTOMERS = 'view_customers'
	MANAGE_CUSTOMERS = 'manage_customers'
	SELL = 'sell'
	VIEW_SALES = 'view_sales'
	CANCEL_SALES = 'cancel_sales'
	RECEIVE_CREDIT_PAYMENTS = 'receive_credit_payments'
	VIEW_FINANCE = 'view_finance'
	MANAGE_PAYABLES = 'manage_payables'
	PAY_PAYABLES = 'pay_payables'
	MANAGE_STORES = 'manage_stores'
	ACCESS_ALL_STORES = 'access_all_stores'
	MANAGE_PAYMENT_METHODS = 'manage_payment_methods'
	VIEW_DASHBOARD = 'view_dashboard'
	DELETE_RECORDS = 'delete_records'
	MANAGE_USERS = 'manage_users'


_READ_ONLY = frozenset({
	Capability.VIEW_CATALOG,
	Capability.VIEW_CUSTOMERS,
	Capability.VIEW_SALES,
	Capability.VIEW_FINANCE,
	Capability.VIEW_DASHBOARD,
})

ROLE_CAPABILITIES: dict[Role, FrozenSet[Capability]] = {
	Role.ADMIN: frozenset(Capability),
	Role.OPERADOR: _READ_ONLY | {
		Capability.MANAGE_CATALOG,
		Capability.MANAGE_STOCK,
		Capability.MANAGE_CUSTOMERS,
		Capability.SELL,
		Capability.CANCEL_SALES,
		Capability.RECEIVE_CREDIT_PAYMENTS,
		Capability.MANAGE_STORES,
		Capability.ACCESS_ALL_STORES,
		Capability.MANAGE_PAYMENT_METHODS,
	},
	Role.PAGADOR: _READ_ONLY | {
		Capability.RECEIVE_CREDIT_PAYMENTS,
		Capability.MANAGE_PAYABLES,
		Capability.PAY_PAYABLES,
	},
	Role.LEITOR: _READ_ONLY,
}

_ROLES_CACHE_ATTR = '_pdv_roles'


def user_roles(user) -> FrozenSet[Role]:
	"""Roles assigned to ``user``; memoized on the user instance."""
	if user is None or not getattr(user, 'is_authenticated', False):
		return frozenset()
	cached = getattr(user, _ROLES_CACHE_ATTR, None)
	if cached is not None:
		return cached
	roles = frozenset(
		Role(code)
		for code in user.role_assignments.values_list('role', flat=True)
		if code in Role.values
	)
	setattr(user, _ROLES_CACHE_ATTR, roles)
	return roles


def forget_roles(user) -> None:
	if user is not None and hasattr(user, _ROLES_CACHE_ATTR):
		delattr(user, _ROLES_CACHE_ATTR)


def capabilities_for_roles(roles: Iterable[Role]) -> FrozenSet[Capability]:
	granted = set()
	for role in roles:
		granted |= ROLE_CAPABILITIES.get(Role(role), frozenset())
	return frozenset(granted)


def user_capabilities(user) -> FrozenSet[Capability]:
	if user is None or not getattr(user, 'is_authenticated', False) or not user.is_active:
		return frozenset()
	if user.is_superuser:
		return frozenset(Capability)
	return capabilities_for_roles(user_roles(user))


def has_capability(user, capability: Capability) -> bool:
	return Capability(capability) in user_capabilities(user)


def has_any_role(user) -> bool:
	"""Users without any role are treated as not yet activated by an administrator."""
	if user is None or not getattr(user, 'is_authenticated', False):
		return False
	return user.is_superuser or bool(user_roles(user))


__all__ = [
	'Role',
	'Capability',
	'ROLE_CAPABILITIES',
	'user_roles',
	'forget_roles',
	'capabilities_for_roles',
	'user_capabilities',
	'has_capability',
	'has_any_role',
]
