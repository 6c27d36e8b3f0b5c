from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint

from inspection.database import Base


class Photo(Base):
    __tablename__ = "photos"

    id = Column(String, primary_key=True)
    assessment_id = Column(String, ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False)
    angle = Column(String, nullable=False)
    phase = Column(String, nullable=False)
    filename = Column(String, nullable=False)
    storage_path = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    uploaded_at = Column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("assessment_id", "angle", "phase", name="uq_photos_assessment_angle_phase"),
    )
