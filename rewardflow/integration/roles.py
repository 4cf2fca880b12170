"""
Role registry: the reference `Authorization` collaborator.

One registry per gated component. The owner is fixed at construction; the
distributor (who may notify rewards) and the authority (who may trigger a
distribution) are pointed at by owner-gated setters on the components.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


def _require_identity(identity: object, *, name: str) -> str:
    if not isinstance(identity, str) or not identity.strip():
        raise ValueError(f"{name} must be a non-empty str")
    return identity


@dataclass
class RoleRegistry:
    owner: str
    distributor: Optional[str] = None
    authority: Optional[str] = None

    def __post_init__(self) -> None:
        _require_identity(self.owner, name="owner")

    def is_owner(self, identity: str) -> bool:
        return identity == self.owner

    def is_distributor(self, identity: str) -> bool:
        return self.distributor is not None and identity == self.distributor

    def is_authority(self, identity: str) -> bool:
        return self.authority is not None and identity == self.authority

    def set_distributor(self, identity: str) -> None:
        self.distributor = _require_identity(identity, name="distributor")

    def set_authority(self, identity: str) -> None:
        self.authority = _require_identity(identity, name="authority")
