"""
Identity & role resolver.

Responsibility:
    Turns the authenticated account plus an optional "acting as" override
    into the ``EffectiveIdentity`` every other component works with.

Architecture position:
    Ledger > Domain -- pure function of its inputs, zero I/O.

Impersonation:
    Only an administrator may act as another account.  While impersonating,
    the identity carries the target's role, id and institution, so scoping
    and write attribution follow the target.  ``actor_id`` keeps the real
    administrator's id for logging.

    If the target cannot be resolved (deleted or unknown), or is itself an
    administrator, the administrator's own platform-wide identity is returned.

Failure modes:
    - PermissionDeniedError when a non-administrator supplies an override.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from fee_ledger.domain.dtos import Role, User
from fee_ledger.exceptions import PermissionDeniedError


@dataclass(frozen=True)
class EffectiveIdentity:
    """
    Who a request acts as.

    ``scope_key`` is the user id whose records are in view, or None for the
    platform-wide administrator view ("all records").
    """

    role: Role
    scope_key: str | None
    actor_id: str
    institution_id: str | None = None
    impersonating: bool = False

    @property
    def acting_as_id(self) -> str | None:
        return self.scope_key if self.impersonating else None


def platform_identity(administrator: User) -> EffectiveIdentity:
    return EffectiveIdentity(
        role=Role.ADMINISTRATOR,
        scope_key=None,
        actor_id=administrator.id,
    )


def resolve_effective_identity(
    current_user: User,
    acting_override: str | None = None,
    users: Mapping[str, User] | None = None,
) -> EffectiveIdentity:
    """
    Resolve the effective identity for ``current_user``.

    Args:
        current_user: The authenticated account.
        acting_override: Id of the account an administrator is acting as.
        users: Lookup of known accounts by id, used to resolve the override.

    Raises:
        PermissionDeniedError: if a non-administrator passes an override.
    """
    is_admin = current_user.role is Role.ADMINISTRATOR

    if acting_override is None:
        if is_admin:
            return platform_identity(current_user)
        return EffectiveIdentity(
            role=current_user.role,
            scope_key=current_user.id,
            actor_id=current_user.id,
            institution_id=current_user.institution_id,
        )

    if not is_admin:
        raise PermissionDeniedError(current_user.role.value, "act as another user")

    target = (users or {}).get(acting_override)
    if target is None or target.role is Role.ADMINISTRATOR:
        return platform_identity(current_user)

    return EffectiveIdentity(
        role=target.role,
        scope_key=target.id,
        actor_id=current_user.id,
        institution_id=target.institution_id,
        impersonating=True,
    )
