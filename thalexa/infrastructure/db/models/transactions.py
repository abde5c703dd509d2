from __future__ import annotations

from sqlalchemy import BigInteger, Index, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from thalexa.infrastructure.db.engine import Base


class TransactionModel(Base):
    __tablename__ = "escrow_transactions"
    __table_args__ = (
        Index("ix_escrow_transactions_sender", "sender"),
        Index("ix_escrow_transactions_receiver", "receiver"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    sender: Mapped[str] = mapped_column(Text, nullable=False)
    receiver: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[int] = mapped_column(Numeric(20, 0), nullable=False)
    currency: Mapped[str] = mapped_column(Text, nullable=False)
    product_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    escrow_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    tx_hash: Mapped[str] = mapped_column(Text, nullable=False, default="")
    function: Mapped[str | None] = mapped_column(Text, nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
