from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
from dependency_injector import providers

from court_booking.platform.config.di import Container, container as default_container
from court_booking.platform.logging.loguru_io import Logger


@asynccontextmanager
async def lifespan(container: Container = default_container) -> AsyncIterator[Container]:
    """
    Start and stop the booking engine.

    Startup enters the clock, hands a background task group to the engine
    for notification delivery, and restores expiry timers left by a previous
    process before anything else touches the engine. Shutdown cancels pending
    timers without firing them.

        async with lifespan() as container:
            engine = container.booking_lifecycle_engine()
    """
    Logger.base.info('🚀 [Court Booking] Starting up...')

    settings = container.config_service()
    database = None
    if settings.BOOKING_STORE_BACKEND == 'sqlalchemy':
        database = container.database()
        await database.create_tables()

    async with container.clock(), anyio.create_task_group() as tg:
        container.task_group.override(providers.Object(tg))
        # the engine captures its task group when built
        container.booking_lifecycle_engine.reset()
        try:
            report = await container.booking_lifecycle_engine().recover_pending_timers()
            Logger.base.info(
                f'✅ [Court Booking] Ready, timers expired={report.expired} '
                f'rearmed={report.rearmed}'
            )

            yield container

            Logger.base.info('🛑 [Court Booking] Shutting down...')
            tg.cancel_scope.cancel()
        finally:
            container.task_group.reset_override()
            container.booking_lifecycle_engine.reset()

    if database is not None:
        await database.dispose()
        Logger.base.info('🗄️ [Court Booking] Database engine disposed')

    Logger.base.info('👋 [Court Booking] Shutdown complete')
