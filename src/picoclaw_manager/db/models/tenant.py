"""Persisted tenant record."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, PortableJSON


class TenantRecord(Base):
    """One provisioned tenant.

    ``config`` and ``resources`` are stored as JSON documents; timestamps
    are written by the store, not by database defaults.
    """

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(63), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    namespace: Mapped[str] = mapped_column(String(63), nullable=False, unique=True)

    config: Mapped[dict[str, Any]] = mapped_column(PortableJSON(), nullable=False, default=dict)
    resources: Mapped[dict[str, Any]] = mapped_column(PortableJSON(), nullable=False, default=dict)

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="provisioning")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<TenantRecord(id={self.id}, status={self.status})>"
