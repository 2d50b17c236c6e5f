from sqlalchemy import Column, Integer, String, Text, Index
from ..database import Base, UTCDateTime, utcnow


class ExceptionBlock(Base):
    """Periodo di indisponibilità (ferie, festivi, imprevisti)."""

    __tablename__ = "exception_blocks"

    id = Column(Integer, primary_key=True)
    professional_id = Column(String(64), nullable=False)
    start_at = Column(UTCDateTime, nullable=False)
    end_at = Column(UTCDateTime, nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("ix_block_prof_start", "professional_id", "start_at"),)
