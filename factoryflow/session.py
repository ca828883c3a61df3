# session.py
# Sessão do usuário autenticado, passada explicitamente às operações

from dataclasses import dataclass
from typing import Optional

from factoryflow.errors import Forbidden
from factoryflow.models import Role, User


@dataclass(frozen=True)
class Session:
    """Ausente (user=None) ou presente (user definido)"""
    user: Optional[User] = None

    @classmethod
    def anonymous(cls) -> "Session":
        return cls(None)

    @classmethod
    def for_user(cls, user: User) -> "Session":
        return cls(user)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        if self.user is None:
            return False
        role = self.user.role
        if role is Role.ADMIN:
            return True
        if role in (Role.MANAGER, Role.EMPLOYEE):
            return False
        raise AssertionError(f"Perfil não tratado: {role}")

    def require_authenticated(self) -> User:
        if self.user is None:
            raise Forbidden("Login necessário")
        return self.user

    def require_admin(self) -> User:
        user = self.require_authenticated()
        if not self.is_admin:
            raise Forbidden("Acesso restrito a administradores")
        return user

    def guard_self_delete(self, user_id: str) -> None:
        if self.user is not None and self.user.id == user_id:
            raise Forbidden("Você não pode excluir a sua própria conta")
