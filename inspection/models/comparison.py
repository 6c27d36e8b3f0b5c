from sqlalchemy import Column, Float, ForeignKey, Integer, String, UniqueConstraint

from inspection.database import Base


class Comparison(Base):
    """Per-angle outcome of the last pickup/return comparison."""

    __tablename__ = "comparisons"

    id = Column(String, primary_key=True)
    assessment_id = Column(String, ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False)
    angle = Column(String, nullable=False)
    pickup_photo_id = Column(String, nullable=True)
    return_photo_id = Column(String, nullable=True)
    matched_count = Column(Integer, nullable=False, default=0)
    new_damages_count = Column(Integer, nullable=False, default=0)
    new_damages_cost = Column(Float, nullable=False, default=0.0)
    compared_at = Column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("assessment_id", "angle", name="uq_comparisons_assessment_angle"),
    )
