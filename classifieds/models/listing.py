from datetime import datetime

from sqlalchemy import Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from classifieds.core.ids import gen_id
from classifieds.models.base import Base, JsonType


class Listing(Base):
    __tablename__ = "listings"
    __table_args__ = (
        Index("ix_listings_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("lst"))

    # verified uid of the creator; never written by an update
    author_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # NULL = "contact for price"
    price: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)

    category: Mapped[str] = mapped_column(String(40), nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    tags: Mapped[list] = mapped_column(JsonType, nullable=False, default=list)
    image_urls: Mapped[list] = mapped_column(JsonType, nullable=False, default=list)
    image_hint: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
