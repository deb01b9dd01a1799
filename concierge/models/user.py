import uuid
from datetime import datetime
from typing import Optional, List

from sqlalchemy import String, DateTime, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from concierge.db.session import Base


class User(Base):
    """
    Local mirror of an account owned by the external auth provider.

    Only the id, contact fields and role are kept here; credentials never are.
    """
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="member", server_default="member")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP")
    )

    submissions: Mapped[List["SymptomSubmission"]] = relationship(
        "SymptomSubmission",
        back_populates="owner",
        cascade="all, delete-orphan"
    )

    @property
    def is_provider(self) -> bool:
        return (self.role or "").lower() == "provider"
