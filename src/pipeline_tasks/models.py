"""Records exchanged with the metadata store and the permission service."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

MANAGED_SERVICE_ACCOUNT_SUFFIX = "@managed-service-account"


@dataclass(slots=True)
class ServiceAccount:
    """Pipeline-scoped identity whose roles are used by automated triggers."""

    name: str
    member_of: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {"name": self.name, "memberOf": list(self.member_of)}


@dataclass(frozen=True, slots=True)
class PermissionView:
    """Roles granted to a user or service account."""

    name: str
    admin: bool = False
    roles: frozenset[str] = frozenset()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PermissionView:
        roles: set[str] = set()
        for role in payload.get("roles") or ():
            if isinstance(role, Mapping):
                role_name = role.get("name")
                if role_name:
                    roles.add(str(role_name))
            elif role:
                roles.add(str(role))
        return cls(
            name=str(payload.get("name", "")),
            admin=bool(payload.get("admin", False)),
            roles=frozenset(roles),
        )
