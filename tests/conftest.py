"""Shared fixtures: per-test SQLite databases, actors and a scenario builder."""

import os

# Must be set before anything imports venueflow settings
os.environ["SECURITY_PASSWORD_BCRYPT_ROUNDS"] = "4"
os.environ["DB_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DB_AUTO_CREATE_TABLES"] = "false"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["ADMISSION_LOCK_BACKEND"] = "memory"
os.environ["MONITORING_LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta  # noqa: E402
from typing import AsyncGenerator, Iterable, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from venueflow.api import deps  # noqa: E402
from venueflow.core.admission import MemoryAdmissionLockManager  # noqa: E402
from venueflow.core.database_manager import Base, DatabaseManager  # noqa: E402
from venueflow.core.permissions import Actor  # noqa: E402
from venueflow.crud import event as event_crud  # noqa: E402
from venueflow.main import app  # noqa: E402
from venueflow.models.event import Event, EventStatus  # noqa: E402
from venueflow.models.resource import Resource  # noqa: E402
from venueflow.models.user import User, UserRole  # noqa: E402
from venueflow.models.venue import Venue  # noqa: E402
from venueflow.schemas.event import EventCreate, ResourceClaimIn  # noqa: E402
from venueflow.services.workflow import ApprovalWorkflow  # noqa: E402

# Fixed reference instant; all windows in tests are offsets from it in hours
T0 = datetime(2030, 1, 7, 8, 0)


def at(hours: float) -> datetime:
    return T0 + timedelta(hours=hours)


@pytest.fixture
async def database(tmp_path) -> AsyncGenerator[DatabaseManager, None]:
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'venueflow.db'}")
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
async def db(database: DatabaseManager) -> AsyncGenerator[AsyncSession, None]:
    assert database.session_factory is not None
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def workflow() -> ApprovalWorkflow:
    return ApprovalWorkflow(MemoryAdmissionLockManager(wait_seconds=5))


class Scenario:
    """Builds users, inventory and events through the real workflow."""

    def __init__(self, db: AsyncSession, workflow: ApprovalWorkflow) -> None:
        self.db = db
        self.workflow = workflow
        self.actors: dict[UserRole, Actor] = {}

    async def setup(self) -> "Scenario":
        for role in UserRole:
            self.actors[role] = await self.add_user(role)
        return self

    async def add_user(self, role: UserRole, name: Optional[str] = None) -> Actor:
        label = name or role.value.lower()
        user = User(
            email=f"{label}@institution.edu",
            hashed_password="not-used",
            full_name=label.title(),
            role=role,
        )
        self.db.add(user)
        await self.db.commit()
        return Actor(id=user.id, role=role)

    @property
    def coordinator(self) -> Actor:
        return self.actors[UserRole.COORDINATOR]

    @property
    def hod(self) -> Actor:
        return self.actors[UserRole.HOD]

    @property
    def dean(self) -> Actor:
        return self.actors[UserRole.DEAN]

    @property
    def head(self) -> Actor:
        return self.actors[UserRole.HEAD]

    @property
    def admin(self) -> Actor:
        return self.actors[UserRole.ADMIN]

    async def venue(self, name: str = "Main Auditorium", capacity: int = 100) -> Venue:
        venue = Venue(name=name, capacity=capacity)
        self.db.add(venue)
        await self.db.commit()
        return venue

    async def resource(self, name: str = "Projector", total_quantity: int = 5) -> Resource:
        resource = Resource(name=name, total_quantity=total_quantity)
        self.db.add(resource)
        await self.db.commit()
        return resource

    async def draft(
        self,
        venue: Venue,
        start: float = 0,
        end: float = 2,
        participants: int = 10,
        claims: Iterable[Tuple[Resource, int]] = (),
        coordinator: Optional[Actor] = None,
        title: str = "Tech Talk",
    ) -> Event:
        return await self.workflow.create_event(
            self.db,
            EventCreate(
                title=title,
                department="Computer Science",
                venue_id=venue.id,
                start_time=at(start),
                end_time=at(end),
                participant_count=participants,
                resources=[
                    ResourceClaimIn(resource_id=r.id, quantity=q) for r, q in claims
                ],
            ),
            coordinator or self.coordinator,
        )

    async def dean_approved(self, *args, **kwargs) -> Event:
        event = await self.draft(*args, **kwargs)
        owner = kwargs.get("coordinator") or self.coordinator
        await self.workflow.submit(self.db, event.id, owner)
        await self.workflow.hod_approve(self.db, event.id, self.hod)
        return await self.workflow.dean_approve(self.db, event.id, self.dean)

    async def committed(self, *args, **kwargs) -> Event:
        event = await self.dean_approved(*args, **kwargs)
        return await self.workflow.head_approve(self.db, event.id, self.head)

    async def force_status(self, event: Event, status: EventStatus) -> None:
        """Put an event straight into ``status``, bypassing the state machine."""
        current = (await event_crud.get_event(self.db, event.id)).status
        assert await event_crud.set_status(
            self.db, event.id, status, expected_prior=current, rejection_reason="x"
        )
        await self.db.commit()


@pytest.fixture
async def scenario(db: AsyncSession, workflow: ApprovalWorkflow) -> Scenario:
    return await Scenario(db, workflow).setup()


@pytest.fixture
def client(tmp_path):
    """TestClient against a fresh SQLite file, with get_db overridden."""
    db_path = tmp_path / "api.db"
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(bind=sync_engine)
    sync_engine.dispose()

    manager = DatabaseManager(f"sqlite+aiosqlite:///{db_path}")

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with manager.get_session() as session:
            yield session

    app.dependency_overrides[deps.get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
