"""Who is asking for a transfer, as far as authorization is concerned."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Actor:
    """Caller identity reduced to the two facts the offload checks need.

    Background work (event handlers, the periodic re-scan) runs outside any
    administrative context and is never denied. Inside an administrative
    context the caller must hold manage rights.
    """

    name: str = "system"
    is_admin_context: bool = False
    can_manage: bool = False

    @classmethod
    def system(cls) -> "Actor":
        return cls()

    @classmethod
    def administrator(cls, name: str = "admin") -> "Actor":
        return cls(name=name, is_admin_context=True, can_manage=True)

    @classmethod
    def anonymous_admin_context(cls, name: str = "anonymous") -> "Actor":
        return cls(name=name, is_admin_context=True, can_manage=False)

    def is_denied(self) -> bool:
        return self.is_admin_context and not self.can_manage
