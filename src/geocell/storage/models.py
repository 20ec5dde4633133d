"""Tables backing the reference spatial index."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from geocell.storage.database import Base, JSONVariant


class SpatialItem(Base):
    """A stored item with its location."""

    __tablename__ = "spatial_items"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSONVariant, nullable=False, default=dict)
    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class SpatialItemCell(Base):
    """The cell token of an item in one named spatial index."""

    __tablename__ = "spatial_item_cells"

    item_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("spatial_items.id", ondelete="CASCADE"), primary_key=True
    )
    index_name: Mapped[str] = mapped_column(String(64), primary_key=True)
    token: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        # Equality and range reads scan (index_name, token) in item order
        Index("ix_spatial_item_cells_lookup", "index_name", "token", "item_id"),
    )
