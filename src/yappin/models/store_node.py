"""SQLAlchemy model holding one leaf of the hierarchical store."""
from typing import Any

from sqlalchemy import JSON, BigInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from yappin.db.session import Base


class StoreNode(Base):
    """A single leaf value addressed by its full slash-separated path."""

    __tablename__ = "store_node"

    # Full path from the root, e.g. "yaps/-Nabc/likes".
    path: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=False)
    # Milliseconds since epoch of the last write.
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
