# src/siwe_gate/models/nonce.py
"""Persistent challenge nonces for the sql nonce backend."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from siwe_gate.db.session import Base


class AuthNonce(Base):
    """Single-use challenge nonce bound to a lowercased address."""

    __tablename__ = "auth_nonce"
    __table_args__ = (Index("ix_auth_nonce_expires_at", "expires_at"),)

    value: Mapped[str] = mapped_column(String(64), primary_key=True)
    address: Mapped[str] = mapped_column(String(42), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    consumed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
