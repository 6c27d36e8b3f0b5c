from sqlalchemy import Boolean, Column, Float, ForeignKey, Index, String

from inspection.database import Base


class Damage(Base):
    __tablename__ = "damages"

    id = Column(String, primary_key=True)
    assessment_id = Column(String, ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False)
    photo_id = Column(String, ForeignKey("photos.id", ondelete="SET NULL"), nullable=True)
    angle = Column(String, nullable=False)
    phase = Column(String, nullable=False)
    description = Column(String, nullable=False)
    severity = Column(String, nullable=False)
    location = Column(String, nullable=False)  # "x:<int>,y:<int>"
    bounding_box = Column(String, nullable=True)  # JSON {x, y, width, height}
    estimated_cost = Column(Float, nullable=False, default=0.0)
    confidence = Column(Float, nullable=False, default=0.0)
    is_new = Column(Boolean, nullable=False, default=False)
    created_at = Column(String, nullable=False)

    __table_args__ = (
        Index("ix_damages_assessment_angle_phase", "assessment_id", "angle", "phase"),
    )
