"""
Dialogue tests for deletion, search, push and the admin flows
"""

from datetime import datetime, timedelta, timezone

import pytest

from eventbot.conversations import dispatch
from eventbot.conversations.admin import REJECT_REACTION
from eventbot.conversations.registry import ADMIN_DELETE, BAN, DELETE, PUSH, REJECT, SEARCH, UNBAN
from eventbot.database.repositories.events import EventStatus
from eventbot.utils import callbacks as cb
from eventbot.utils.dates import local_today, utcnow
from eventbot.utils.formatters import escape, format_user_mention
from eventbot.utils.i18n import t

from .fakes import ADMIN_CHAT_ID, ADMIN_ID, CHANNEL_ID, USER_ID, make_config, offered_event_ids


def said(harness, chat_id=USER_ID):
    return [message.text for message in harness.channel.sent_to(chat_id)]


def admin_conversation(harness):
    return harness.conversation(user_id=ADMIN_ID, name="admin", chat_id=ADMIN_CHAT_ID)


class TestDeleteFlow:
    """Submitters delete their own upcoming published events"""

    async def test_delete_after_preview(self, harness):
        event = await harness.seed_event(status=EventStatus.APPROVED, message_id=555)
        conv = harness.conversation()
        await DELETE.start(conv)

        assert await conv.current_step() == "DeleteStates:choosing"
        assert offered_event_ids(harness.channel.sent_to(USER_ID)[-1].reply_markup) == [event.id]

        await dispatch(conv, harness.press(cb.EventChoice(event_id=event.id)))
        assert await conv.current_step() == "DeleteStates:confirming"
        assert said(harness)[-2].startswith(t("delete.preview_header"))
        assert said(harness)[-1] == t("delete.confirm")

        await dispatch(conv, harness.press(cb.Control(action=cb.CONFIRM)))

        assert harness.event_repo.events == {}
        assert harness.channel.deleted == [(CHANNEL_ID, 555)]
        assert said(harness)[-1] == t("delete.done")
        assert await conv.current_step() is None

    async def test_nothing_to_delete(self, harness):
        await harness.seed_event()
        conv = harness.conversation()
        await DELETE.start(conv)

        assert said(harness) == [t("delete.none")]
        assert await conv.current_step() is None

    async def test_foreign_event_is_not_found(self, harness):
        await harness.seed_event(status=EventStatus.APPROVED)
        foreign = await harness.seed_event(id="foreign", status=EventStatus.APPROVED, submitter_id=999)
        conv = harness.conversation()
        await DELETE.start(conv)
        await dispatch(conv, harness.press(cb.EventChoice(event_id=foreign.id)))

        assert said(harness)[-1] == t("delete.not_found")
        assert foreign.id in harness.event_repo.events

    async def test_cancel_keeps_event(self, harness):
        event = await harness.seed_event(status=EventStatus.APPROVED)
        conv = harness.conversation()
        await DELETE.start(conv)
        await dispatch(conv, harness.press(cb.EventChoice(event_id=event.id)))
        await dispatch(conv, harness.press(cb.Control(action=cb.CANCEL)))

        assert event.id in harness.event_repo.events
        assert said(harness)[-1] == t("conversation.cancelled")
        assert await conv.current_step() is None

    async def test_storage_failure_is_reported(self, harness):
        event = await harness.seed_event(status=EventStatus.APPROVED)
        conv = harness.conversation()
        await DELETE.start(conv)
        await dispatch(conv, harness.press(cb.EventChoice(event_id=event.id)))
        harness.event_repo.fail_delete = True
        await dispatch(conv, harness.press(cb.Control(action=cb.CONFIRM)))

        assert said(harness)[-1] == t("delete.failed")
        assert event.id in harness.event_repo.events


class TestSearchFlow:
    async def _seed_on(self, harness, day, status=EventStatus.APPROVED, **overrides):
        start = datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)
        return await harness.seed_event(
            status=status,
            entry_date=start - timedelta(hours=1),
            start_date=start,
            end_date=start + timedelta(hours=2),
            **overrides,
        )

    async def test_specific_date(self, harness):
        day = (utcnow() + timedelta(days=3)).date()
        await self._seed_on(harness, day)
        conv = harness.conversation()
        await SEARCH.start(conv)

        assert said(harness) == [t("search.menu")]
        assert await conv.current_step() == "SearchStates:menu"

        await dispatch(conv, harness.press(cb.SearchChoice(choice=cb.SEARCH_SPECIFIC)))
        assert await conv.current_step() == "SearchStates:date_input"

        date_text = day.strftime(harness.config.events.date_only_format)
        await dispatch(conv, harness.text(date_text))

        assert said(harness)[-1].startswith(t("search.result_header", index=1, total=1, date=date_text))
        assert await conv.current_step() is None

    async def test_invalid_date_asks_again(self, harness):
        conv = harness.conversation()
        await SEARCH.start(conv)
        await dispatch(conv, harness.press(cb.SearchChoice(choice=cb.SEARCH_SPECIFIC)))
        await dispatch(conv, harness.text("31.02.2031"))

        assert said(harness)[-1] == t("search.invalid_date", format="DD.MM.YYYY")
        assert await conv.current_step() == "SearchStates:date_input"

    async def test_today_without_results(self, harness):
        conv = harness.conversation()
        await SEARCH.start(conv)
        await dispatch(conv, harness.press(cb.SearchChoice(choice=cb.SEARCH_TODAY)))

        rules = harness.config.events
        date_text = local_today(rules.tz).strftime(rules.date_only_format)
        assert said(harness)[-1] == t("search.no_results", date=date_text)
        assert await conv.current_step() is None

    async def test_tomorrow(self, harness):
        rules = harness.config.events
        tomorrow = local_today(rules.tz) + timedelta(days=1)
        await self._seed_on(harness, tomorrow)
        conv = harness.conversation()
        await SEARCH.start(conv)
        await dispatch(conv, harness.press(cb.SearchChoice(choice=cb.SEARCH_TOMORROW)))

        date_text = tomorrow.strftime(rules.date_only_format)
        assert said(harness)[-1].startswith(t("search.result_header", index=1, total=1, date=date_text))
        assert await conv.current_step() is None

    async def test_pending_events_are_not_found(self, harness):
        day = (utcnow() + timedelta(days=3)).date()
        await self._seed_on(harness, day, status=EventStatus.PENDING)
        conv = harness.conversation()
        await SEARCH.start(conv)
        await dispatch(conv, harness.press(cb.SearchChoice(choice=cb.SEARCH_SPECIFIC)))
        date_text = day.strftime(harness.config.events.date_only_format)
        await dispatch(conv, harness.text(date_text))

        assert said(harness)[-1] == t("search.no_results", date=date_text)

    async def test_exit(self, harness):
        conv = harness.conversation()
        await SEARCH.start(conv)
        await dispatch(conv, harness.press(cb.SearchChoice(choice=cb.SEARCH_EXIT)))

        assert said(harness)[-1] == t("search.closed")
        assert await conv.current_step() is None


class TestPushFlow:
    """An older published event can be posted again once"""

    async def _old_published(self, harness, **overrides):
        return await harness.seed_event(
            status=EventStatus.APPROVED,
            message_id=555,
            created_at=utcnow() - timedelta(days=10),
            **overrides,
        )

    async def test_push_after_confirmation(self, harness):
        event = await self._old_published(harness)
        conv = harness.conversation()
        await PUSH.start(conv)

        assert await conv.current_step() == "PushStates:choosing"
        assert offered_event_ids(harness.channel.sent_to(USER_ID)[-1].reply_markup) == [event.id]

        await dispatch(conv, harness.press(cb.EventChoice(event_id=event.id)))
        assert await conv.current_step() == "PushStates:confirming"
        await dispatch(conv, harness.press(cb.Control(action=cb.CONFIRM)))

        stored = harness.event_repo.events[event.id]
        assert stored.pushed_count == 1
        assert (CHANNEL_ID, 555) in harness.channel.deleted
        assert said(harness)[-1] == t("push.outcome.pushed", days=harness.config.events.push_min_age_days)
        assert await conv.current_step() is None

    async def test_nothing_pushable(self, harness):
        await harness.seed_event(status=EventStatus.APPROVED)
        conv = harness.conversation()
        await PUSH.start(conv)

        assert said(harness) == [t("push.none", days=harness.config.events.push_min_age_days)]
        assert await conv.current_step() is None

    async def test_already_pushed_events_are_not_offered(self, harness):
        await self._old_published(harness, id="pushed", pushed_count=1)
        fresh = await self._old_published(harness, id="fresh")
        conv = harness.conversation()
        await PUSH.start(conv)

        assert offered_event_ids(harness.channel.sent_to(USER_ID)[-1].reply_markup) == [fresh.id]

    async def test_cancel(self, harness):
        event = await self._old_published(harness)
        conv = harness.conversation()
        await PUSH.start(conv)
        await dispatch(conv, harness.press(cb.EventChoice(event_id=event.id)))
        await dispatch(conv, harness.press(cb.Control(action=cb.CANCEL)))

        assert harness.event_repo.events[event.id].pushed_count == 0
        assert said(harness)[-1] == t("conversation.cancelled")


class TestRejectFlow:
    """A rejection needs a reason and stamps the review message"""

    @pytest.fixture
    def config(self):
        return make_config(require_approval=True)

    async def test_reject_with_reason(self, harness):
        event = await harness.seed_event()
        conv = admin_conversation(harness)
        await REJECT.start(conv, event.id, 321)

        assert await conv.current_step() == "RejectStates:reason"
        await dispatch(conv, harness.text("Wrong venue"))

        stored = harness.event_repo.events[event.id]
        assert stored.status == EventStatus.REJECTED
        assert stored.rejection_reason == "Wrong venue"
        assert harness.channel.edits[-1][:2] == (ADMIN_CHAT_ID, 321)
        assert "Wrong venue" in harness.channel.edits[-1][2]
        assert harness.channel.reactions == [(ADMIN_CHAT_ID, 321, REJECT_REACTION)]
        assert said(harness, ADMIN_CHAT_ID)[-1] == t("reject.done", title=escape(event.title))
        assert "Wrong venue" in said(harness)[-1]
        assert await conv.current_step() is None

    @pytest.mark.parametrize("reason", ["   ", "x" * 501])
    async def test_reason_length_is_checked(self, harness, reason):
        event = await harness.seed_event()
        conv = admin_conversation(harness)
        await REJECT.start(conv, event.id, 321)
        await dispatch(conv, harness.text(reason))

        assert said(harness, ADMIN_CHAT_ID)[-1] == t("reject.reason_invalid", max=500)
        assert await conv.current_step() == "RejectStates:reason"
        assert harness.event_repo.events[event.id].status == EventStatus.PENDING

    async def test_published_event_is_refused(self, harness):
        event = await harness.seed_event(status=EventStatus.APPROVED)
        conv = admin_conversation(harness)
        await REJECT.start(conv, event.id, 321)

        assert said(harness, ADMIN_CHAT_ID) == [t("moderation.already_published", title=escape(event.title))]
        assert await conv.current_step() is None

    async def test_cancel_keeps_event_pending(self, harness):
        event = await harness.seed_event()
        conv = admin_conversation(harness)
        await REJECT.start(conv, event.id, 321)
        await dispatch(conv, harness.press(cb.Control(action=cb.CANCEL)))

        assert harness.event_repo.events[event.id].status == EventStatus.PENDING
        assert said(harness, ADMIN_CHAT_ID)[-1] == t("conversation.cancelled")


class TestAdminDeleteFlow:
    """Admin deletion with an optional reason for the submitter"""

    async def test_delete_without_reason(self, harness):
        event = await harness.seed_event(status=EventStatus.APPROVED, message_id=555)
        conv = admin_conversation(harness)
        await ADMIN_DELETE.start(conv, event.id)

        assert await conv.current_step() == "AdminDeleteStates:reason"
        await dispatch(conv, harness.press(cb.Control(action=cb.CONFIRM)))

        assert harness.event_repo.events == {}
        assert (CHANNEL_ID, 555) in harness.channel.deleted
        assert said(harness) == [t("admin_delete.submitter_notice", title=escape(event.title))]
        assert said(harness, ADMIN_CHAT_ID)[-1] == t("admin_delete.done", title=escape(event.title), admin="admin")
        assert await conv.current_step() is None

    async def test_delete_with_reason(self, harness):
        event = await harness.seed_event(status=EventStatus.APPROVED)
        conv = admin_conversation(harness)
        await ADMIN_DELETE.start(conv, event.id)
        await dispatch(conv, harness.text("Duplicate <post>"))

        assert harness.event_repo.events == {}
        assert said(harness) == [
            t("admin_delete.submitter_notice_reason", title=escape(event.title), reason="Duplicate &lt;post&gt;")
        ]

    async def test_cancel(self, harness):
        event = await harness.seed_event(status=EventStatus.APPROVED)
        conv = admin_conversation(harness)
        await ADMIN_DELETE.start(conv, event.id)
        prompt_id = harness.channel.sent_to(ADMIN_CHAT_ID)[-1].message_id
        await dispatch(conv, harness.press(cb.Control(action=cb.CANCEL)))

        assert event.id in harness.event_repo.events
        assert (ADMIN_CHAT_ID, prompt_id, None) in harness.channel.markup_edits
        assert said(harness, ADMIN_CHAT_ID)[-1] == t("admin_delete.cancelled")
        assert said(harness) == []

    async def test_unknown_event(self, harness):
        conv = admin_conversation(harness)
        await ADMIN_DELETE.start(conv, "missing")

        assert said(harness, ADMIN_CHAT_ID) == [t("moderation.not_found")]
        assert await conv.current_step() is None


class TestBanFlow:
    async def test_ban_without_reason(self, harness):
        conv = admin_conversation(harness)
        await BAN.start(conv)
        await dispatch(conv, harness.text("555"))

        assert await conv.current_step() == "BanStates:reason"
        await dispatch(conv, harness.text("/skip"))

        entry = harness.blacklist_repo.users[555]
        assert entry.reason is None
        assert entry.banned_by == ADMIN_ID
        assert said(harness, ADMIN_CHAT_ID)[-1] == t("ban.done", user=format_user_mention(555, None))
        assert await conv.current_step() is None

    async def test_ban_with_reason(self, harness):
        conv = admin_conversation(harness)
        await BAN.start(conv)
        await dispatch(conv, harness.text("555"))
        await dispatch(conv, harness.text("spam"))

        assert harness.blacklist_repo.users[555].reason == "spam"

    async def test_invalid_id_asks_again(self, harness):
        conv = admin_conversation(harness)
        await BAN.start(conv)
        await dispatch(conv, harness.text("alice"))

        assert said(harness, ADMIN_CHAT_ID)[-1] == t("ban.invalid_id")
        assert await conv.current_step() == "BanStates:user_id"

    async def test_already_banned(self, harness):
        await harness.services.blacklist.ban(555, None, ADMIN_ID, "admin")
        conv = admin_conversation(harness)
        await BAN.start(conv)
        await dispatch(conv, harness.text("555"))
        await dispatch(conv, harness.text("/skip"))

        assert said(harness, ADMIN_CHAT_ID)[-1] == t("ban.already", user=format_user_mention(555, None))

    async def test_other_commands_are_refused_at_reason_step(self, harness):
        conv = admin_conversation(harness)
        await BAN.start(conv)
        await dispatch(conv, harness.text("555"))
        await dispatch(conv, harness.text("/submit"))

        assert said(harness, ADMIN_CHAT_ID)[-1] == t("conversation.busy")
        assert harness.blacklist_repo.users == {}
        assert await conv.current_step() == "BanStates:reason"


class TestUnbanFlow:
    async def test_unban(self, harness):
        await harness.services.blacklist.ban(555, None, ADMIN_ID, "admin")
        conv = admin_conversation(harness)
        await UNBAN.start(conv)
        await dispatch(conv, harness.text("555"))

        assert harness.blacklist_repo.users == {}
        assert said(harness, ADMIN_CHAT_ID)[-1] == t("unban.done", user=format_user_mention(555, None))
        assert await conv.current_step() is None

    async def test_unknown_user(self, harness):
        conv = admin_conversation(harness)
        await UNBAN.start(conv)
        await dispatch(conv, harness.text("555"))

        assert said(harness, ADMIN_CHAT_ID)[-1] == t("unban.not_found", user=format_user_mention(555, None))
