from datetime import datetime
from typing import Any, Optional

from eventbot.conversations.base import Conversation, Incoming, Outcome
from eventbot.conversations.collectors import FieldCollector
from eventbot.keyboards import dates_confirm_keyboard, prompt_keyboard
from eventbot.services.draft import Draft
from eventbot.utils import callbacks as cb
from eventbot.utils.dates import format_hint, format_local, parse_local, utcnow
from eventbot.utils.formatters import escape
from eventbot.utils.i18n import t

TRIAD_KEY = "triad"

STEP_ENTRY = "entry"
STEP_START = "start"
STEP_END = "end"
STEP_CONFIRM = "confirm"

_NEXT_STEP = {
    STEP_ENTRY: STEP_START,
    STEP_START: STEP_END,
    STEP_END: STEP_CONFIRM,
}


class DateTriadCollector(FieldCollector):
    """Collects entry, start and end together; the draft only changes on confirm.

    Sub-step progress lives under ``TRIAD_KEY`` in the conversation data.
    """

    field = "dates"

    async def prompt(self, conv: Conversation, draft: Draft, *, editing: bool) -> None:
        await conv.update(**{TRIAD_KEY: {"step": STEP_ENTRY}})
        await self._ask(conv, draft, STEP_ENTRY, editing=editing)

    async def take(self, conv: Conversation, incoming: Incoming, draft: Draft, *, editing: bool) -> Outcome:
        data = await conv.data()
        triad: dict[str, Any] = dict(data.get(TRIAD_KEY) or {"step": STEP_ENTRY})
        step = triad.get("step", STEP_ENTRY)

        if step == STEP_CONFIRM:
            return await self._checkpoint(conv, incoming, draft, triad, editing=editing)

        value = await self.expect_text(conv, incoming, draft, editing=editing)
        if value is None:
            return Outcome.PENDING

        rules = conv.config.events
        try:
            moment = parse_local(value, rules.date_format, rules.tz)
        except ValueError:
            error = t("dates.invalid_format", format=format_hint(rules.date_format))
            return await self._retry(conv, draft, step, error, editing=editing)
        if moment < utcnow():
            return await self._retry(conv, draft, step, t("dates.in_past"), editing=editing)
        if step == STEP_START and moment < _moment(triad, STEP_ENTRY):
            return await self._retry(conv, draft, STEP_START, t("dates.start_before_entry"), editing=editing)
        if step == STEP_END and moment <= _moment(triad, STEP_START):
            return await self._retry(conv, draft, STEP_END, t("dates.end_before_start"), editing=editing)

        triad[step] = moment.isoformat()
        triad["step"] = _NEXT_STEP[step]
        await conv.update(**{TRIAD_KEY: triad})
        if triad["step"] == STEP_CONFIRM:
            await self._show_checkpoint(conv, triad)
        else:
            await self._ask(conv, draft, triad["step"], editing=editing)
        return Outcome.PENDING

    async def _checkpoint(
        self,
        conv: Conversation,
        incoming: Incoming,
        draft: Draft,
        triad: dict[str, Any],
        *,
        editing: bool,
    ) -> Outcome:
        match incoming.action:
            case cb.Control(action=cb.CONFIRM):
                await conv.ack(incoming)
                draft.entry_date = _moment(triad, STEP_ENTRY)
                draft.start_date = _moment(triad, STEP_START)
                draft.end_date = _moment(triad, STEP_END)
                await conv.update(**{TRIAD_KEY: None})
                return Outcome.ACCEPTED
            case cb.Control(action=cb.RESET):
                await conv.ack(incoming, t("dates.reset_done"))
                await conv.update(**{TRIAD_KEY: {"step": STEP_ENTRY}})
                await self._ask(conv, draft, STEP_ENTRY, editing=editing)
                return Outcome.PENDING
        if incoming.is_button:
            await conv.ack(incoming, t("conversation.unexpected_button"))
        else:
            await conv.say(t("conversation.use_buttons"), reply_markup=dates_confirm_keyboard())
        return Outcome.PENDING

    async def _retry(self, conv: Conversation, draft: Draft, step: str, error: str, *, editing: bool) -> Outcome:
        data = await conv.data()
        triad = dict(data.get(TRIAD_KEY) or {})
        triad["step"] = step
        triad.pop(step, None)
        await conv.update(**{TRIAD_KEY: triad})
        await self._ask(conv, draft, step, editing=editing, error=error)
        return Outcome.PENDING

    async def _ask(
        self,
        conv: Conversation,
        draft: Draft,
        step: str,
        *,
        editing: bool,
        error: Optional[str] = None,
    ) -> None:
        rules = conv.config.events
        lines = []
        if error:
            lines.extend([error, ""])
        lines.append(t(f"dates.{step}_prompt", format=format_hint(rules.date_format)))
        if editing and step == STEP_ENTRY and draft.has_dates:
            lines.extend(["", t("dates.current", **_formatted(conv, draft.entry_date, draft.start_date, draft.end_date))])
        await conv.say("\n".join(lines), reply_markup=prompt_keyboard(keep=editing))

    async def _show_checkpoint(self, conv: Conversation, triad: dict[str, Any]) -> None:
        text = t(
            "dates.confirm_prompt",
            **_formatted(conv, _moment(triad, STEP_ENTRY), _moment(triad, STEP_START), _moment(triad, STEP_END)),
        )
        await conv.say(text, reply_markup=dates_confirm_keyboard())


def _moment(triad: dict[str, Any], step: str) -> datetime:
    return datetime.fromisoformat(triad[step])


def _formatted(conv: Conversation, entry: datetime, start: datetime, end: datetime) -> dict[str, str]:
    rules = conv.config.events
    return {
        "entry": escape(format_local(entry, rules.date_format, rules.tz)),
        "start": escape(format_local(start, rules.date_format, rules.tz)),
        "end": escape(format_local(end, rules.date_format, rules.tz)),
    }
