"""
Archetype and theme catalog models
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (Boolean, CheckConstraint, Column, DateTime, Integer,
                        String, Uuid)

from pairmatch.core.database import Base


class Archetype(Base):
    """Structural pattern of a generated assignment (CRUD app, real-time app, ...)"""
    __tablename__ = "archetypes"

    id = Column(Uuid, primary_key=True, default=uuid4)
    code = Column(String(50), nullable=False, unique=True, index=True)
    display_name = Column(String(100), nullable=False)
    structure_description = Column(String(500), nullable=False)
    component_patterns = Column(String(500), nullable=True)
    api_patterns = Column(String(300), nullable=True)
    min_complexity = Column(Integer, nullable=False)
    max_complexity = Column(Integer, nullable=False)
    active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "min_complexity BETWEEN 1 AND 5 AND max_complexity BETWEEN 1 AND 5 "
            "AND min_complexity <= max_complexity",
            name="ck_archetypes_complexity",
        ),
    )

    def covers(self, complexity: int) -> bool:
        return self.min_complexity <= complexity <= self.max_complexity

    def overlaps(self, lower: int, upper: int) -> bool:
        return self.min_complexity <= upper and self.max_complexity >= lower

    def __repr__(self):
        return f"<Archetype(code={self.code}, range={self.min_complexity}-{self.max_complexity})>"


class Theme(Base):
    """Domain flavour applied to a generated assignment"""
    __tablename__ = "themes"

    id = Column(Uuid, primary_key=True, default=uuid4)
    code = Column(String(50), nullable=False, unique=True, index=True)
    display_name = Column(String(100), nullable=False)
    domain_context = Column(String(500), nullable=True)
    example_entities = Column(String(300), nullable=True)
    active = Column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self):
        return f"<Theme(code={self.code})>"
