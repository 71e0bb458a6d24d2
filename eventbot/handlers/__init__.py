from aiogram import Dispatcher

from config import Config
from eventbot.middleware.blacklist import BlacklistMiddleware
from eventbot.middleware.throttling import ThrottlingMiddleware

from . import conversation, errors, events, moderation, start


def setup(dp: Dispatcher, config: Config) -> None:
    throttling = ThrottlingMiddleware(config.rate_limit.requests, config.rate_limit.window_seconds)
    blacklist = BlacklistMiddleware()
    for observer in (dp.message, dp.callback_query):
        observer.outer_middleware(throttling)
        observer.outer_middleware(blacklist)
    dp.include_router(errors.router)
    dp.include_router(start.router)
    dp.include_router(moderation.router)
    dp.include_router(events.router)
    dp.include_router(conversation.router)
