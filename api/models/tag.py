"""Tag ORM model."""

import uuid
from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    group: Mapped[str] = mapped_column(String(50), nullable=False)  # Characteristics | Dietary | Allergen
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    cafe_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("cafes.id"))
