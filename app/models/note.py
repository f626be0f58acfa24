"""Note ORM model — one opaque client-encrypted message."""

from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.utils.clock import utcnow


class Note(Base):
    __tablename__ = "notes"
    __table_args__ = (Index("idx_notes_expires_at", "expires_at"),)

    id: Mapped[str] = mapped_column(String(22), primary_key=True)  # base64url of 128 random bits
    message: Mapped[str] = mapped_column(Text)  # ciphertext, never decoded server-side
    iv: Mapped[str] = mapped_column(String(24))
    salt: Mapped[str | None] = mapped_column(String(64), nullable=True)  # passphrase mode only
    delete_token: Mapped[str] = mapped_column(String(32))
    expires_at: Mapped[datetime] = mapped_column(DateTime)  # naive UTC
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
