"""Sweep lock ORM model — claim row for backends without advisory locks."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class SweepLock(Base):
    __tablename__ = "sweep_locks"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    holder: Mapped[str] = mapped_column(String(32))  # random per-claim id
    expires_at: Mapped[datetime] = mapped_column(DateTime)  # claim is stale after this
