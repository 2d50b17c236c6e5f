from sqlalchemy import Column, Integer, String, Date, Time, Boolean, Text, CheckConstraint, Index
from ..database import Base, UTCDateTime, utcnow


class AvailabilityTemplate(Base):
    """Fascia oraria settimanale ricorrente di un professionista."""

    __tablename__ = "availability_templates"

    id = Column(Integer, primary_key=True)
    professional_id = Column(String(64), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = domenica ... 6 = sabato
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    slot_duration_minutes = Column(Integer, nullable=False, default=30)
    active = Column(Boolean, nullable=False, default=True)
    valid_from = Column(Date, nullable=True)
    valid_to = Column(Date, nullable=True)  # None = vigente senza scadenza
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_template_dow"),
        CheckConstraint("slot_duration_minutes > 0", name="ck_template_duration"),
        Index("ix_template_prof_dow", "professional_id", "day_of_week"),
    )


class DayOverride(Base):
    """
    Giorno puntuale: orario specifico per una data.
    Se esiste almeno un override per (professionista, data), sostituisce le fasce settimanali.
    """

    __tablename__ = "day_overrides"

    id = Column(Integer, primary_key=True)
    professional_id = Column(String(64), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    slot_duration_minutes = Column(Integer, nullable=False, default=30)
    notes = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("slot_duration_minutes > 0", name="ck_override_duration"),
        Index("ix_override_prof_date", "professional_id", "date"),
    )
