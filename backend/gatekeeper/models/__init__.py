"""ORM Models — SQLAlchemy declarative models for durable verification state.

Invariants:
    - All models inherit from Base (db/base.py)
    - Scope owns the requirement policy; manual entries reference scopes by id
    - Verification sessions are NOT persisted (in-memory only)

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete for create_all and Alembic
"""

from gatekeeper.models.scope import Scope  # noqa: F401
from gatekeeper.models.manual_verification_entry import ManualVerificationEntry  # noqa: F401
from gatekeeper.models.known_name import KnownName  # noqa: F401
from gatekeeper.models.blacklist_entry import BlacklistEntry  # noqa: F401
from gatekeeper.models.logged_counter import LoggedCounter  # noqa: F401
