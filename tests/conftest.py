"""
Pytest fixtures for the fee ledger test suite.

Provides:
- A deterministic clock and id generator
- A ``ledger`` fixture that runs each test against both store backends
  (in-memory and SQLite through SQLAlchemy)
- A seeded world: administrator, two guardians, a student, a bursar and
  two schools
- The command services and the scoped view selector wired to that ledger
- Structured log capture
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from io import StringIO

import pytest

from fee_ledger.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from fee_ledger.db.memory_store import InMemoryStore
from fee_ledger.db.sql_store import SqlAlchemyStore
from fee_ledger.domain.clock import DeterministicClock
from fee_ledger.domain.dtos import Cadence, Role, School, SettlementAccount, User
from fee_ledger.domain.identity import EffectiveIdentity, resolve_effective_identity
from fee_ledger.domain.ids import SequentialIdGenerator
from fee_ledger.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from fee_ledger.selectors.view_selector import ScopedViewSelector
from fee_ledger.services.directory_service import DirectoryService
from fee_ledger.services.enrollment_service import EnrollmentService
from fee_ledger.services.ledger_store import LedgerStore
from fee_ledger.services.lifecycle_service import TransactionLifecycleController
from fee_ledger.services.notification_service import NotificationService


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture fee_ledger logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, lifecycle):
            lifecycle.approve(...)
            logs = captured_logs()
            assert any(r["message"] == "payment_approved" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("fee_ledger")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Time and ids
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Clock fixed at 2024-01-01 12:00 UTC until advanced."""
    return DeterministicClock()


@pytest.fixture
def id_generator():
    return SequentialIdGenerator()


# =============================================================================
# Store backends
# =============================================================================


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def sqlite_store():
    """SqlAlchemyStore over a fresh in-memory SQLite database."""
    init_engine_from_url("sqlite://")
    create_tables()
    session = get_session()
    try:
        yield SqlAlchemyStore(session)
    finally:
        session.rollback()
        session.close()
        drop_tables()
        reset_engine()


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    """Each test using this fixture runs once per backend."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def ledger(store, deterministic_clock, id_generator):
    return LedgerStore(store, deterministic_clock, id_generator)


# =============================================================================
# Seeded world
# =============================================================================


@dataclass
class World:
    """Accounts and schools every service test starts from."""

    ledger: LedgerStore
    admin: User
    guardian: User
    other_guardian: User
    student: User
    bursar: User
    school: School
    other_school: School

    def identity(self, user: User, acting_as: User | str | None = None) -> EffectiveIdentity:
        """Resolve ``user``'s identity, optionally acting as another account."""
        target = acting_as.id if isinstance(acting_as, User) else acting_as
        users = {u.id: u for u in self.ledger.list_users()}
        return resolve_effective_identity(user, target, users)

    @property
    def admin_identity(self) -> EffectiveIdentity:
        return self.identity(self.admin)

    @property
    def guardian_identity(self) -> EffectiveIdentity:
        return self.identity(self.guardian)

    @property
    def bursar_identity(self) -> EffectiveIdentity:
        return self.identity(self.bursar)

    def add_dependent(
        self,
        owner: User | None = None,
        school: School | None = None,
        total_fee=Decimal("6000"),
        paid_amount=Decimal("0"),
        name: str = "Tobi",
        cadence: Cadence = Cadence.WEEKLY,
    ):
        """Create a dependent directly through the ledger, bypassing enrollment."""
        return self.ledger.add_dependent(
            owner_id=(owner or self.guardian).id,
            name=name,
            institution_id=(school or self.school).id,
            grade="Grade 4",
            total_fee=total_fee,
            cadence=cadence,
            next_installment_amount=Decimal("375"),
            paid_amount=paid_amount,
        )


@pytest.fixture
def world(ledger):
    school = ledger.add_school(
        "Greenfield Academy", "12 Elm Road, Lagos", "office@greenfield.example", 300,
    )
    other_school = ledger.add_school(
        "Riverside College", "4 Quay Street, Abuja", "admin@riverside.example", 120,
    )
    admin = ledger.add_user("Ada Okafor", "ada@platform.example", Role.ADMINISTRATOR)
    guardian = ledger.add_user("Grace Bello", "grace@example.com", Role.GUARDIAN)
    other_guardian = ledger.add_user("Gus Adeyemi", "gus@example.com", Role.GUARDIAN)
    student = ledger.add_user("Sam Eze", "sam@example.com", Role.STUDENT)
    bursar = ledger.add_user(
        "Bea Nwosu",
        "bursar@greenfield.example",
        Role.INSTITUTION_BURSAR,
        institution_id=school.id,
        bank_details=SettlementAccount("First Bank", "Greenfield Academy", "0123456789"),
    )
    return World(
        ledger=ledger,
        admin=admin,
        guardian=guardian,
        other_guardian=other_guardian,
        student=student,
        bursar=bursar,
        school=school,
        other_school=other_school,
    )


# =============================================================================
# Services and selectors
# =============================================================================


@pytest.fixture
def lifecycle(ledger):
    return TransactionLifecycleController(ledger)


@pytest.fixture
def enrollment(ledger, lifecycle):
    return EnrollmentService(ledger, lifecycle=lifecycle)


@pytest.fixture
def directory(ledger):
    return DirectoryService(ledger)


@pytest.fixture
def notification_service(ledger):
    return NotificationService(ledger)


@pytest.fixture
def views(ledger):
    return ScopedViewSelector(ledger)
