from sqlalchemy import Column, Float, Index, String

from inspection.database import Base
from inspection.enums import AssessmentStatus


class Assessment(Base):
    __tablename__ = "assessments"

    id = Column(String, primary_key=True)
    vehicle_id = Column(String, nullable=False)
    vehicle_name = Column(String, nullable=False)
    status = Column(String, nullable=False, default=AssessmentStatus.PICKUP_IN_PROGRESS.value)
    total_damage_cost = Column(Float, nullable=False, default=0.0)
    new_damage_cost = Column(Float, nullable=False, default=0.0)
    created_at = Column(String, nullable=False)
    pickup_analyzed_at = Column(String, nullable=True)
    return_analyzed_at = Column(String, nullable=True)
    completed_at = Column(String, nullable=True)

    __table_args__ = (
        Index("ix_assessments_vehicle_id", "vehicle_id"),
        Index("ix_assessments_status", "status"),
    )
