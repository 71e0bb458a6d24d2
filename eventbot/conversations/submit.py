import logging

import asyncpg
from aiogram.fsm.state import State, StatesGroup

from eventbot.conversations.base import Conversation
from eventbot.conversations.drafting import DraftFlow, announce_submission
from eventbot.keyboards import template_offer_keyboard
from eventbot.services.draft import Draft
from eventbot.utils.i18n import t

logger = logging.getLogger(__name__)


class SubmitStates(StatesGroup):
    collecting = State()
    summary = State()


class SubmitFlow(DraftFlow):
    name = "submit"
    states = SubmitStates

    async def start(self, conv: Conversation) -> None:
        await conv.finish()
        await conv.save_draft(Draft())
        await conv.say(t("submit.intro"))
        await self.begin_collecting(conv, self.first_pass[0], editing=False)

    async def complete(self, conv: Conversation, draft: Draft) -> None:
        try:
            event = await conv.services.events.create_from_draft(draft, conv.actor.id, conv.actor.name)
        except asyncpg.PostgresError as e:
            logger.error(f"[submit] save failed: user_id={conv.actor.id}, error={e}")
            await conv.finish()
            await conv.say(t("error.save_failed"))
            return
        await conv.finish()
        await announce_submission(conv, event, is_edit=False)
        conv.services.staging.put(conv.actor.id, draft)
        await conv.say(t("templates.offer"), reply_markup=template_offer_keyboard())
