from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from classifieds.core.ids import gen_id
from classifieds.models.base import Base, AuditMixin


class Account(AuditMixin, Base):
    """Identity-provider user. Account.id is the uid every other table refers to."""
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("usr"))
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
