"""An admin-controlled set of member addresses, and the messages that edit it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Whitelist:
    """Members allowed to act, plus the single admin who manages them."""

    members: set[str] = field(default_factory=set)
    admin: str = ""

    def has(self, addr: str) -> bool:
        return addr in self.members or self.admin == addr

    def is_admin(self, addr: str) -> bool:
        return self.admin == addr

    def is_member(self, addr: str) -> bool:
        return addr in self.members

    def to_dict(self) -> dict[str, Any]:
        return {"members": sorted(self.members), "admin": self.admin}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Whitelist:
        return cls(members=set(data["members"]), admin=data["admin"])


@dataclass(frozen=True)
class AddMember:
    """Add an address to the members."""

    address: str


@dataclass(frozen=True)
class RemoveMember:
    """Remove an address from the members."""

    address: str


@dataclass(frozen=True)
class ChangeAdmin:
    """Make an address the admin (and a member)."""

    address: str