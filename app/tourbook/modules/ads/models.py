from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.tourbook.models import Base, JSONType

if TYPE_CHECKING:
    from app.tourbook.modules.places.models import Place


class Ad(Base):
    """Sponsored listing shown on a place page. At most one per place."""

    __tablename__ = "ads"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    place_id: Mapped[str] = mapped_column(
        ForeignKey("places.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    poster: Mapped[str | None] = mapped_column(Text, nullable=True)  # single company/poster image
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=4.5)

    # Contact
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    whatsapp: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    link: Mapped[str] = mapped_column(Text, nullable=False)
    booking_link: Mapped[str | None] = mapped_column(Text, nullable=True)

    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    place: Mapped["Place"] = relationship("Place", back_populates="ad")

    def image_urls(self) -> list[str]:
        urls = list(self.images or [])
        if self.poster:
            urls.append(self.poster)
        return urls
