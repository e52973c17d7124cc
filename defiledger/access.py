"""
access.py - AccessGate: who may run privileged operations

Privileged operations (price and LTV updates, pool funding, liquidation,
pausing, emergency withdrawal, reward-rate updates) call
gate.require_privileged(caller) as their first statement.
"""

from __future__ import annotations
from typing import FrozenSet, Iterable, Protocol, runtime_checkable

from .core import Unauthorized


@runtime_checkable
class AccessGate(Protocol):
    """Capability check for privileged operations."""

    def is_privileged(self, caller: str) -> bool:
        ...

    def require_privileged(self, caller: str) -> None:
        """Raise Unauthorized unless caller is privileged."""
        ...


class OwnerGate:
    """A single privileged identity, transferable by its current holder."""

    def __init__(self, owner: str):
        if not owner or not owner.strip():
            raise ValueError("owner cannot be empty")
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def is_privileged(self, caller: str) -> bool:
        return caller == self._owner

    def require_privileged(self, caller: str) -> None:
        if not self.is_privileged(caller):
            raise Unauthorized(f"{caller} is not the owner")

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self.require_privileged(caller)
        if not new_owner or not new_owner.strip():
            raise ValueError("new owner cannot be empty")
        self._owner = new_owner

    def __repr__(self) -> str:
        return f"OwnerGate(owner={self._owner})"


class RoleGate:
    """A fixed set of privileged identities (e.g., an operator and a keeper)."""

    def __init__(self, members: Iterable[str]):
        self._members: FrozenSet[str] = frozenset(m for m in members if m)
        if not self._members:
            raise ValueError("RoleGate needs at least one member")

    @property
    def members(self) -> FrozenSet[str]:
        return self._members

    def is_privileged(self, caller: str) -> bool:
        return caller in self._members

    def require_privileged(self, caller: str) -> None:
        if not self.is_privileged(caller):
            raise Unauthorized(f"{caller} does not hold the operator role")

    def __repr__(self) -> str:
        return f"RoleGate({sorted(self._members)})"
