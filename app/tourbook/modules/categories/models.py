from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.tourbook.models import Base

if TYPE_CHECKING:
    from app.tourbook.modules.destinations.models import Destination


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (
        Index("idx_categories_enabled", "enabled"),
        Index("idx_categories_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(50), nullable=False)  # icon key looked up by the client, e.g. "mountain"
    color: Mapped[str] = mapped_column(String(100), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    destinations: Mapped[list["Destination"]] = relationship(
        "Destination",
        back_populates="category",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def image_urls(self) -> list[str]:
        """Every image owned by this row and the rows a delete cascades to."""
        urls = [self.image_url] if self.image_url else []
        for d in self.destinations:
            urls.extend(d.image_urls())
        return urls
