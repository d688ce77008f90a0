import orjson

from court_booking.platform.logging.loguru_io import Logger
from court_booking.service.booking.app.interface.i_notification_sink import INotificationSink
from court_booking.service.booking.domain.value_object.booking_notification import (
    BookingNotification,
)


class LoggingNotificationSinkImpl(INotificationSink):
    """Writes each notification as a JSON log line; a delivery transport plugs in here"""

    async def notify(self, *, user_id: str, notification: BookingNotification) -> None:
        payload = orjson.dumps({'user_id': user_id, **notification.to_dict()}).decode()
        Logger.base.info(f'🔔 [NOTIFY] {payload}')
