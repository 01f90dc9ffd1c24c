from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.tourbook.models import Base, JSONType

if TYPE_CHECKING:
    from app.tourbook.modules.categories.models import Category
    from app.tourbook.modules.places.models import Place


class Destination(Base):
    __tablename__ = "destinations"
    __table_args__ = (
        Index("idx_destinations_category", "category_id"),
        Index("idx_destinations_enabled", "enabled"),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    category_id: Mapped[str] = mapped_column(ForeignKey("categories.id", ondelete="CASCADE"), nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    duration: Mapped[str] = mapped_column(String(100), nullable=False)  # free text, e.g. "2-3 days"
    highlights: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    images: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    category: Mapped["Category"] = relationship("Category", back_populates="destinations")
    places: Mapped[list["Place"]] = relationship(
        "Place",
        back_populates="destination",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def image_urls(self) -> list[str]:
        urls = list(self.images or [])
        for p in self.places:
            urls.extend(p.image_urls())
        return urls
