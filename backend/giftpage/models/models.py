from datetime import datetime

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from giftpage.db.session import Base


class GiftRow(Base):
    __tablename__ = "gifts"

    slug: Mapped[str] = mapped_column(String(255), primary_key=True)
    recipient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    greeting: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    edit_key: Mapped[str] = mapped_column(String(64), nullable=False)
