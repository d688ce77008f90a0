from datetime import datetime

import attrs

from court_booking.service.booking.domain.enum.booking_status import BookingStatus


@attrs.define(frozen=True)
class StatusChange:
    """One entry of a booking's append-only status history"""

    status: BookingStatus
    changed_at: datetime

    def to_dict(self) -> dict:
        return {'status': self.status.value, 'changed_at': self.changed_at.isoformat()}

    @classmethod
    def from_dict(cls, data: dict) -> 'StatusChange':
        return cls(
            status=BookingStatus(data['status']),
            changed_at=datetime.fromisoformat(data['changed_at']),
        )
