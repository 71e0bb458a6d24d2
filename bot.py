import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import SimpleEventIsolation
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config import load_config
from eventbot.database import close_pool, init_pool, run_schema_setup
from eventbot.handlers import setup as setup_handlers
from eventbot.services.container import build_services
from eventbot.utils.di import set_config, set_services
from eventbot.utils.messaging import AiogramChannel

logger = logging.getLogger(__name__)


async def main() -> None:
    config = load_config()
    logging.basicConfig(level=config.bot.log_level)
    set_config(config)
    await init_pool(config.database.dsn)
    await run_schema_setup()
    bot = Bot(token=config.bot.token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    services = build_services(config, AiogramChannel(bot))
    set_services(services)
    dp = Dispatcher(events_isolation=SimpleEventIsolation())
    setup_handlers(dp, config)

    scheduler: AsyncIOScheduler | None = None
    try:
        scheduler = AsyncIOScheduler(timezone=config.events.tz)

        async def archive_job() -> None:
            report = await services.archive.sweep()
            if report.archived or report.failed:
                logger.info(f"[archive_job] archived={report.archived}, failed={report.failed}")

        scheduler.add_job(archive_job, "interval", minutes=config.archive.interval_minutes, id="archive")
        scheduler.start()
        await dp.start_polling(bot)
    finally:
        if scheduler:
            scheduler.shutdown(wait=False)
        await close_pool()
        await bot.session.close()


if __name__ == "__main__":
    asyncio.run(main())
