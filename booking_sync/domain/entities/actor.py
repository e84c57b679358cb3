from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ActorKind(str, Enum):
    anonymous = "anonymous"
    user = "user"
    admin = "admin"


class Scope(str, Enum):
    mine = "mine"
    all = "all"


@dataclass(frozen=True)
class Actor:
    kind: ActorKind = ActorKind.anonymous
    user_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.kind != ActorKind.anonymous

    @property
    def is_admin(self) -> bool:
        return self.kind == ActorKind.admin

    @property
    def default_scope(self) -> Scope | None:
        if self.kind == ActorKind.admin:
            return Scope.all
        if self.kind == ActorKind.user:
            return Scope.mine
        return None

    @classmethod
    def anonymous(cls) -> "Actor":
        return cls()

    @classmethod
    def user(cls, user_id: str) -> "Actor":
        return cls(kind=ActorKind.user, user_id=user_id)

    @classmethod
    def admin(cls, user_id: str) -> "Actor":
        return cls(kind=ActorKind.admin, user_id=user_id)
