# Import all models so they register with Base.metadata
from .event import COMMITTED_STATUSES, Event, EventResource, EventStatus  # noqa: F401
from .resource import Resource  # noqa: F401
from .user import User, UserRole  # noqa: F401
from .venue import Venue  # noqa: F401
