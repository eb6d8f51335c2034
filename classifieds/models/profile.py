from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from classifieds.models.base import Base, AuditMixin


class UserProfileRow(AuditMixin, Base):
    __tablename__ = "user_profiles"

    # same value as the identity provider uid, never generated here
    id: Mapped[str] = mapped_column(String, primary_key=True)

    email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
