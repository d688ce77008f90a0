from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from court_booking.platform.database.orm_db_setting import Base, UTCDateTime


class BookingModel(Base):
    __tablename__ = 'court_booking'

    id: Mapped[str] = mapped_column(String(36), primary_key=True)  # UUID7 text
    court_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    venue_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    payer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    status_history: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    expire_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    payment_proof_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    payment_proof_uploaded_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
