"""
DirectoryService -- accounts and schools.

Responsibility:
    Sign-up, profile edits and account removal, plus school administration.
    Cascades (a deleted school takes its dependents and payments with it) are
    performed by ``LedgerStore``; this service decides who may trigger them.

Authorization:
    ==========================  ==========================================
    Operation                   Allowed for
    ==========================  ==========================================
    register_user               anyone, except administrator accounts,
                                which only a platform-wide admin creates
    update_user                 the account itself or a platform-wide
                                admin; role/institution changes admin only
    delete_user                 platform-wide administrator
    add/update/delete school    platform-wide administrator
    delete_all_schools          platform-wide administrator
    ==========================  ==========================================
"""

from __future__ import annotations

from typing import Any

from fee_ledger.domain.dtos import Role, School, SettlementAccount, User
from fee_ledger.domain.identity import EffectiveIdentity
from fee_ledger.domain.scoping import may_edit_user, may_manage_directory
from fee_ledger.domain.validation import parse_role
from fee_ledger.exceptions import FeeLedgerError, PermissionDeniedError
from fee_ledger.logging_config import get_logger
from fee_ledger.services.base import BaseService

logger = get_logger("services.directory")

_ADMIN_ONLY_USER_FIELDS = frozenset({"role", "institution_id"})


class DirectoryService(BaseService):
    """User and school administration over a ``LedgerStore``."""

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def register_user(
        self,
        name: str,
        email: str,
        role: Role | str,
        institution_id: str | None = None,
        bank_details: SettlementAccount | None = None,
        phone_number: str | None = None,
        identity: EffectiveIdentity | None = None,
    ) -> User:
        """
        Create an account.

        Self sign-up (``identity`` is None) may create guardian, student and
        bursar accounts.  A bursar's school must exist at sign-up.

        Raises:
            PermissionDeniedError: administrator account without a
                platform-wide administrator identity.
            SchoolNotFoundError: unknown bursar institution.
            InvalidInputError: record breaks the account rules.
        """
        try:
            role = parse_role(role)
            if role is Role.ADMINISTRATOR and (
                identity is None or not may_manage_directory(identity)
            ):
                raise PermissionDeniedError(
                    identity.role.value if identity else "anonymous",
                    "create administrator accounts",
                )
            if role is Role.INSTITUTION_BURSAR and institution_id:
                self.ledger.get_school(institution_id)
            user = self.ledger.add_user(
                name=name,
                email=email,
                role=role,
                institution_id=institution_id,
                bank_details=bank_details,
                phone_number=phone_number,
            )
        except FeeLedgerError as exc:
            logger.warning(
                "user_registration_rejected",
                extra={"role": getattr(role, "value", role), "error_code": exc.code},
            )
            raise
        logger.info("user_registered", extra={"user_id": user.id, "role": user.role.value})
        return user

    def update_user(self, identity: EffectiveIdentity, user_id: str, **changes: Any) -> User:
        with self._bind(identity):
            try:
                user = self.ledger.get_user(user_id)
                if not may_edit_user(identity, user):
                    raise PermissionDeniedError(identity.role.value, "edit another user")
                restricted = _ADMIN_ONLY_USER_FIELDS & changes.keys()
                if restricted and not may_manage_directory(identity):
                    raise PermissionDeniedError(
                        identity.role.value, f"change {', '.join(sorted(restricted))}",
                    )
                updated = self.ledger.update_user(user_id, **changes)
            except FeeLedgerError as exc:
                logger.warning(
                    "user_update_rejected",
                    extra={"user_id": user_id, "error_code": exc.code},
                )
                raise
            logger.info(
                "user_updated",
                extra={"user_id": user_id, "fields": sorted(changes)},
            )
            return updated

    def delete_user(self, identity: EffectiveIdentity, user_id: str) -> None:
        with self._bind(identity):
            try:
                self._require_admin(identity, "delete users")
                self.ledger.delete_user(user_id)
            except FeeLedgerError as exc:
                logger.warning(
                    "user_delete_rejected",
                    extra={"user_id": user_id, "error_code": exc.code},
                )
                raise
            logger.info("user_deleted", extra={"user_id": user_id})

    # ------------------------------------------------------------------
    # Schools
    # ------------------------------------------------------------------

    def add_school(
        self,
        identity: EffectiveIdentity,
        name: str,
        address: str = "",
        contact_email: str = "",
        baseline_headcount: int = 0,
    ) -> School:
        with self._bind(identity):
            try:
                self._require_admin(identity, "add schools")
                school = self.ledger.add_school(
                    name=name,
                    address=address,
                    contact_email=contact_email,
                    baseline_headcount=baseline_headcount,
                )
            except FeeLedgerError as exc:
                logger.warning("school_add_rejected", extra={"error_code": exc.code})
                raise
            logger.info("school_added", extra={"school_id": school.id, "school_name": school.name})
            return school

    def update_school(self, identity: EffectiveIdentity, school_id: str, **changes: Any) -> School:
        """Edit a school.  A rename is copied onto its dependents and payments."""
        with self._bind(identity):
            try:
                self._require_admin(identity, "edit schools")
                school = self.ledger.update_school(school_id, **changes)
            except FeeLedgerError as exc:
                logger.warning(
                    "school_update_rejected",
                    extra={"school_id": school_id, "error_code": exc.code},
                )
                raise
            logger.info(
                "school_updated",
                extra={"school_id": school_id, "fields": sorted(changes)},
            )
            return school

    def delete_school(self, identity: EffectiveIdentity, school_id: str) -> None:
        """Delete a school with its dependents and their payments."""
        with self._bind(identity):
            try:
                self._require_admin(identity, "delete schools")
                self.ledger.delete_school(school_id)
            except FeeLedgerError as exc:
                logger.warning(
                    "school_delete_rejected",
                    extra={"school_id": school_id, "error_code": exc.code},
                )
                raise
            logger.info("school_deleted", extra={"school_id": school_id})

    def delete_all_schools(self, identity: EffectiveIdentity) -> int:
        with self._bind(identity):
            try:
                self._require_admin(identity, "delete schools")
                removed = self.ledger.delete_all_schools()
            except FeeLedgerError as exc:
                logger.warning("school_delete_all_rejected", extra={"error_code": exc.code})
                raise
            logger.info("schools_deleted", extra={"count": removed})
            return removed

    @staticmethod
    def _require_admin(identity: EffectiveIdentity, action: str) -> None:
        if not may_manage_directory(identity):
            raise PermissionDeniedError(identity.role.value, action)
