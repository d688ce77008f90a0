"""
https://python-dependency-injector.ets-labs.org/index.html

The clock is an AnyioClockImpl that must be entered before the engine arms
any timer; `lifespan.lifespan()` does that and restores pending timers.
"""

from datetime import timedelta
import zoneinfo

from dependency_injector import containers, providers

from court_booking.platform.config.core_setting import Settings
from court_booking.platform.database.orm_db_setting import Database
from court_booking.service.analytics.app.query.aggregate_analytics_use_case import (
    AggregateAnalyticsUseCase,
)
from court_booking.service.analytics.driven_adapter.venue_ownership_booking_query_impl import (
    VenueOwnershipBookingQueryImpl,
)
from court_booking.service.booking.app.command.booking_lifecycle_engine import (
    BookingLifecycleEngine,
)
from court_booking.service.booking.app.query.booking_status_watcher import BookingStatusWatcher
from court_booking.service.booking.driven_adapter.clock.anyio_clock_impl import AnyioClockImpl
from court_booking.service.booking.driven_adapter.event.in_memory_booking_status_broadcaster_impl import (
    InMemoryBookingStatusBroadcasterImpl,
)
from court_booking.service.booking.driven_adapter.notification.logging_notification_sink_impl import (
    LoggingNotificationSinkImpl,
)
from court_booking.service.booking.driven_adapter.store.in_memory_booking_store_impl import (
    InMemoryBookingStoreImpl,
)
from court_booking.service.booking.driven_adapter.store.sqlalchemy_booking_store_impl import (
    SqlAlchemyBookingStoreImpl,
)


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Database (only instantiated by the sqlalchemy store backend)
    database = providers.Singleton(Database, url=config_service.provided.DATABASE_URL)

    # Background task group for notification delivery (set by the host application)
    task_group = providers.Object(None)

    clock = providers.Singleton(AnyioClockImpl)

    booking_store = providers.Selector(
        config_service.provided.BOOKING_STORE_BACKEND,
        memory=providers.Singleton(InMemoryBookingStoreImpl),
        sqlalchemy=providers.Singleton(SqlAlchemyBookingStoreImpl, database=database),
    )

    status_broadcaster = providers.Singleton(
        InMemoryBookingStatusBroadcasterImpl,
        buffer_size=config_service.provided.STATUS_WATCH_BUFFER_SIZE,
    )
    notification_sink = providers.Singleton(LoggingNotificationSinkImpl)

    booking_lifecycle_engine = providers.Singleton(
        BookingLifecycleEngine,
        booking_store=booking_store,
        clock=clock,
        notification_sink=notification_sink,
        status_broadcaster=status_broadcaster,
        payment_window=providers.Factory(
            timedelta, seconds=config_service.provided.BOOKING_PAYMENT_WINDOW_SECONDS
        ),
        max_cas_retries=config_service.provided.BOOKING_CAS_MAX_RETRIES,
        notification_timeout=config_service.provided.NOTIFICATION_TIMEOUT_SECONDS,
        task_group=task_group,
    )
    booking_status_watcher = providers.Singleton(
        BookingStatusWatcher,
        booking_store=booking_store,
        status_broadcaster=status_broadcaster,
        poll_interval=config_service.provided.STATUS_WATCH_POLL_INTERVAL_SECONDS,
    )

    # Analytics
    owner_booking_query = providers.Singleton(
        VenueOwnershipBookingQueryImpl,
        booking_store=booking_store,
        venues_by_owner=config_service.provided.ANALYTICS_VENUES_BY_OWNER,
    )
    aggregate_analytics_use_case = providers.Factory(
        AggregateAnalyticsUseCase,
        owner_booking_query=owner_booking_query,
        clock=clock,
        tz=providers.Factory(zoneinfo.ZoneInfo, config_service.provided.ANALYTICS_TIMEZONE),
        top_customers_limit=config_service.provided.ANALYTICS_TOP_CUSTOMERS_LIMIT,
    )


container = Container()


def cleanup() -> None:
    container.reset_singletons()
