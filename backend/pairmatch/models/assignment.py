"""
Generated assignment and sprint review models
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (JSON, Boolean, CheckConstraint, Column, Date,
                        DateTime, ForeignKey, Integer, String, Text, Uuid)
from sqlalchemy.orm import relationship

from pairmatch.core.database import Base


class Assignment(Base):
    """Work description produced for a matched pair"""
    __tablename__ = "assignments"

    id = Column(Uuid, primary_key=True, default=uuid4)
    match_id = Column(Uuid, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)

    # Selection inputs; null when the selection itself could not run
    archetype_id = Column(Uuid, ForeignKey("archetypes.id"), nullable=True)
    theme_id = Column(Uuid, ForeignKey("themes.id"), nullable=True)
    target_complexity = Column(Integer, nullable=True)
    topic = Column(String(100), nullable=True)
    is_fallback = Column(Boolean, default=False, nullable=False)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    match = relationship("Match", back_populates="assignment")
    archetype = relationship("Archetype")
    theme = relationship("Theme")

    def __repr__(self):
        return f"<Assignment(match_id={self.match_id}, title={self.title!r}, fallback={self.is_fallback})>"


class SprintReview(Base):
    """README review produced when a match is completed with a repository"""
    __tablename__ = "sprint_reviews"

    id = Column(Uuid, primary_key=True, default=uuid4)
    match_id = Column(Uuid, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True)
    repo_url = Column(String(500), nullable=False)
    score = Column(
        Integer,
        CheckConstraint("score BETWEEN 0 AND 100", name="ck_sprint_reviews_score"),
        nullable=False,
    )
    feedback = Column(Text, nullable=True)
    strengths = Column(JSON, nullable=False, default=list)
    missing_elements = Column(JSON, nullable=False, default=list)
    readme_content = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<SprintReview(match_id={self.match_id}, score={self.score})>"
