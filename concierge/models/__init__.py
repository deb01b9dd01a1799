# concierge/models/__init__.py
from concierge.db.session import Base, engine

# Import model modules so SQLAlchemy registers all mappers.
# Import the modules (not the classes) to avoid circular imports.
from . import user  # noqa: F401
from . import symptom_submission  # noqa: F401
from . import triage  # noqa: F401


def init_db() -> None:
    """Create tables if they don't exist."""
    Base.metadata.create_all(bind=engine)
