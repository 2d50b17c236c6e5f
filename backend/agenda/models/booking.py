from sqlalchemy import Column, Integer, String, Enum, Text, Boolean, Index
import enum
from ..database import Base, UTCDateTime, utcnow


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"  # ausente


# stati che occupano l'agenda
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED)
TERMINAL_STATUSES = (BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW)


class Booking(Base):
    """Turno: appuntamento concreto di un paziente con un professionista."""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)

    professional_id = Column(String(64), nullable=False)
    patient_id = Column(String(64), nullable=False)
    start_at = Column(UTCDateTime, nullable=False)
    end_at = Column(UTCDateTime, nullable=False)

    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.PENDING)
    # sobreturno: creato fuori agenda, salta il controllo di sovrapposizione
    is_overbooking = Column(Boolean, nullable=False, default=False)
    reason = Column(Text, default="")

    cancelled_by = Column(String(64), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_booking_prof_start", "professional_id", "start_at"),
        Index("ix_booking_patient", "patient_id"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
