from rest_framework import permissions

from core.roles import Capability, has_any_role, has_capability


class HasCapability(permissions.BasePermission):
    """
    Libera o acesso quando o usuário possui a capacidade exigida pela view.

    A view informa ``capability_map`` (ação -> Capability) e, como padrão,
    ``read_capability`` para métodos de leitura e ``write_capability`` para os
    demais. Sem capacidade declarada, basta o usuário ter algum papel.
    """

    message = "Você não tem permissão para executar esta ação."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        if not has_any_role(user):
            self.message = "Usuário inativo. Sua conta ainda não foi ativada por um administrador."
            return False
        capability = self.get_capability(request, view)
        if capability is None:
            return True
        return has_capability(user, capability)

    @staticmethod
    def get_capability(request, view):
        action = getattr(view, "action", None)
        capability_map = getattr(view, "capability_map", None) or {}
        if action and action in capability_map:
            return capability_map[action]
        if request.method in permissions.SAFE_METHODS:
            return getattr(view, "read_capability", None)
        return getattr(view, "write_capability", None) or getattr(view, "read_capability", None)


def capability_permission(capability: Capability):
    """
    Permissão fixa para views simples: ``permission_classes = [capability_permission(Capability.SELL)]``.
    """

    class _Permission(HasCapability):
        @staticmethod
        def get_capability(request, view):
            return capability

    _Permission.__name__ = f"Has{capability.name.title().replace('_', '')}"
    return _Permission
