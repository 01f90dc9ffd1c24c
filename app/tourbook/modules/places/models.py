from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.tourbook.models import Base, JSONType

if TYPE_CHECKING:
    from app.tourbook.modules.ads.models import Ad
    from app.tourbook.modules.destinations.models import Destination


class Place(Base):
    __tablename__ = "places"
    __table_args__ = (
        Index("idx_places_destination", "destination_id"),
        Index("idx_places_enabled", "enabled"),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    destination_id: Mapped[str] = mapped_column(ForeignKey("destinations.id", ondelete="CASCADE"), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    duration: Mapped[str] = mapped_column(String(100), nullable=False)
    time_duration: Mapped[str] = mapped_column(String(100), nullable=False)  # suggested visit length
    highlights: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    images: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    location: Mapped[dict] = mapped_column(JSONType, nullable=False)  # {"lat": float, "lng": float}

    # Travel tips (optional)
    best_time: Mapped[str | None] = mapped_column(String(200), nullable=True)
    travel_time: Mapped[str | None] = mapped_column(String(200), nullable=True)
    ideal_for: Mapped[str | None] = mapped_column(String(300), nullable=True)

    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    destination: Mapped["Destination"] = relationship("Destination", back_populates="places")
    ad: Mapped["Ad | None"] = relationship(
        "Ad",
        back_populates="place",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def image_urls(self) -> list[str]:
        urls = list(self.images or [])
        if self.ad is not None:
            urls.extend(self.ad.image_urls())
        return urls
