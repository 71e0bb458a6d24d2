"""
End-to-end dialogue tests: submit, edit, busy guard and cancellation
"""

from datetime import timedelta

import pytest

from eventbot.conversations import dispatch
from eventbot.conversations.registry import EDIT, SUBMIT
from eventbot.database.repositories.events import EventStatus
from eventbot.utils import callbacks as cb
from eventbot.utils.constants import CATEGORIES
from eventbot.utils.dates import utcnow
from eventbot.utils.i18n import t

from .fakes import ADMIN_CHAT_ID, CHANNEL_ID, USER_ID, Harness, make_config, offered_event_ids


async def feed(harness, conv, *inputs):
    for incoming in inputs:
        handled = await dispatch(conv, incoming)
        assert handled, f"input was not handled: {incoming}"


def said(harness, chat_id=USER_ID):
    return [message.text for message in harness.channel.sent_to(chat_id)]


class TestSubmitFlow:
    """A full submission with approval disabled goes straight to the channel"""

    async def _submit_jazz_night(self, harness, conv):
        await SUBMIT.start(conv)
        await feed(
            harness,
            conv,
            harness.text("Jazz Night"),
            harness.text("An evening of live jazz"),
            harness.text("Cafe Plaza"),
            harness.text(harness.local(harness.tomorrow_at(9))),
            harness.text(harness.local(harness.tomorrow_at(20))),
            harness.text(harness.local(harness.tomorrow_at(23))),
            harness.press(cb.Control(action=cb.CONFIRM)),
            harness.press(cb.CategoryToggle(index=CATEGORIES.index("Music"))),
            harness.press(cb.Control(action=cb.DONE)),
            harness.press(cb.Control(action=cb.NONE)),
            harness.press(cb.Control(action=cb.NONE)),
            harness.press(cb.Control(action=cb.NONE)),
        )

    async def test_summary_shown_after_first_pass(self, harness):
        conv = harness.conversation()
        await self._submit_jazz_night(harness, conv)

        assert await conv.current_step() == "SubmitStates:summary"
        summary = harness.channel.sent_to(USER_ID)[-1]
        assert summary.text.startswith(t("summary.header"))
        assert "Jazz Night" in summary.text
        assert harness.event_repo.events == {}

    async def test_confirm_publishes_event(self, harness):
        conv = harness.conversation()
        await self._submit_jazz_night(harness, conv)
        await feed(harness, conv, harness.press(cb.Control(action=cb.CONFIRM)))

        events = list(harness.event_repo.events.values())
        assert len(events) == 1
        event = events[0]
        assert event.title == "Jazz Night"
        assert event.location == "Cafe Plaza"
        assert event.categories == ("Music",)
        assert event.status == EventStatus.APPROVED
        assert event.entry_date < event.start_date < event.end_date

        public = harness.channel.sent_to(CHANNEL_ID)
        assert len(public) == 1
        assert event.message_id == public[0].message_id
        assert len(harness.channel.sent_to(ADMIN_CHAT_ID)) == 1

        assert await conv.current_step() is None
        assert t("submit.published") in said(harness)
        assert said(harness)[-1] == t("templates.offer")
        assert USER_ID in harness.services.staging

    async def test_missing_field_is_collected_before_saving(self, harness):
        conv = harness.conversation()
        await self._submit_jazz_night(harness, conv)
        draft = await conv.load_draft()
        draft.location = None
        await conv.save_draft(draft)

        await feed(harness, conv, harness.press(cb.Control(action=cb.CONFIRM)))

        assert harness.event_repo.events == {}
        assert await conv.current_step() == "SubmitStates:collecting"
        assert (await conv.data())["field"] == "location"

    async def test_cancel_on_summary_discards_draft(self, harness):
        conv = harness.conversation()
        await self._submit_jazz_night(harness, conv)
        await feed(harness, conv, harness.press(cb.Control(action=cb.CANCEL)))

        assert await conv.current_step() is None
        assert harness.event_repo.events == {}
        assert said(harness)[-1] == t("conversation.cancelled")


class TestSubmitWithApproval:
    """With approval on, the event waits for review and nothing reaches the channel"""

    async def test_pending_event_goes_to_admins(self):
        harness = Harness(make_config(require_approval=True))
        conv = harness.conversation()
        await TestSubmitFlow()._submit_jazz_night(harness, conv)
        await feed(harness, conv, harness.press(cb.Control(action=cb.CONFIRM)))

        event = next(iter(harness.event_repo.events.values()))
        assert event.status == EventStatus.PENDING
        assert harness.channel.sent_to(CHANNEL_ID) == []
        assert len(harness.channel.sent_to(ADMIN_CHAT_ID)) == 1
        assert t("submit.pending") in said(harness)


class TestEditFlow:
    """Editing a published event replaces its public post"""

    async def test_edit_location_republishes(self, harness):
        original = await harness.seed_event(status=EventStatus.APPROVED, message_id=555)
        conv = harness.conversation()

        await EDIT.start(conv)
        assert await conv.current_step() == "EditStates:choosing"

        await feed(
            harness,
            conv,
            harness.press(cb.EventChoice(event_id=original.id)),
            harness.press(cb.SummaryEdit(field="location")),
            harness.text("Rooftop Bar"),
            harness.press(cb.Control(action=cb.CONFIRM)),
        )

        event = harness.event_repo.events[original.id]
        assert event.location == "Rooftop Bar"
        assert event.title == original.title
        assert event.updated_count == 1
        assert event.status == EventStatus.EDITED_APPROVED
        assert (CHANNEL_ID, 555) in harness.channel.deleted
        assert event.message_id not in (None, 555)
        assert len(harness.channel.sent_to(CHANNEL_ID)) == 1
        assert len(harness.channel.sent_to(ADMIN_CHAT_ID)) == 1
        assert t("edit.published") in said(harness)

    async def test_keep_returns_to_summary_unchanged(self, harness):
        original = await harness.seed_event(status=EventStatus.APPROVED)
        conv = harness.conversation()
        await EDIT.start(conv)
        await feed(
            harness,
            conv,
            harness.press(cb.EventChoice(event_id=original.id)),
            harness.press(cb.SummaryEdit(field="title")),
            harness.press(cb.Control(action=cb.KEEP)),
        )

        assert await conv.current_step() == "EditStates:summary"
        assert (await conv.load_draft()).title == "Jazz Night"

    async def test_no_events_to_edit(self, harness):
        conv = harness.conversation()
        await EDIT.start(conv)

        assert await conv.current_step() is None
        assert said(harness) == [t("edit.none")]

    async def test_past_events_are_not_offered(self, harness):
        start = utcnow() - timedelta(days=1)
        await harness.seed_event(
            status=EventStatus.APPROVED,
            entry_date=start,
            start_date=start,
            end_date=start + timedelta(hours=2),
        )
        conv = harness.conversation()
        await EDIT.start(conv)

        assert said(harness) == [t("edit.none")]

    async def test_foreign_event_is_refused(self, harness):
        event = await harness.seed_event(status=EventStatus.APPROVED, submitter_id=999)
        conv = harness.conversation()
        await EDIT.start(conv)
        # only the other user's event exists, so nothing is listed
        assert said(harness) == [t("edit.none")]

        await harness.seed_event(id="mine", status=EventStatus.APPROVED)
        await EDIT.start(conv)
        await feed(harness, conv, harness.press(cb.EventChoice(event_id=event.id)))

        assert await conv.current_step() is None
        assert said(harness)[-1] == t("edit.not_found")


class TestEditLimit:
    """Events that used up their edits are left out of the choice list"""

    @pytest.fixture
    def config(self):
        return make_config(max_event_edits=1)

    async def test_only_editable_events_are_offered(self, harness):
        await harness.seed_event(id="used", status=EventStatus.APPROVED, updated_count=1)
        await harness.seed_event(id="fresh", status=EventStatus.APPROVED)
        conv = harness.conversation()
        await EDIT.start(conv)

        assert await conv.current_step() == "EditStates:choosing"
        assert offered_event_ids(harness.channel.sent_to(USER_ID)[-1].reply_markup) == ["fresh"]

    async def test_limit_reached_when_nothing_is_editable(self, harness):
        await harness.seed_event(status=EventStatus.APPROVED, updated_count=1)
        conv = harness.conversation()
        await EDIT.start(conv)

        assert await conv.current_step() is None
        assert said(harness) == [t("edit.limit_reached", max=1)]


class TestDispatch:
    """Routing of inputs to the active dialogue"""

    async def test_idle_actor_is_not_handled(self, harness):
        conv = harness.conversation()
        assert await dispatch(conv, harness.text("hello")) is False

    async def test_commands_are_blocked_while_busy(self, harness):
        conv = harness.conversation()
        await SUBMIT.start(conv)

        assert await dispatch(conv, harness.text("/search")) is True
        assert said(harness)[-1] == t("conversation.busy")
        assert await conv.current_step() == "SubmitStates:collecting"
        assert (await conv.load_draft()).title is None

    async def test_cancel_command_aborts(self, harness):
        conv = harness.conversation()
        await SUBMIT.start(conv)
        await feed(harness, conv, harness.text("Jazz Night"))

        assert await dispatch(conv, harness.text("/cancel")) is True
        assert await conv.current_step() is None
        assert said(harness)[-1] == t("conversation.cancelled")

    async def test_unknown_step_is_reset(self, harness):
        conv = harness.conversation()
        await conv.state.set_state("RetiredStates:somewhere")

        assert await dispatch(conv, harness.text("hello")) is False
        assert await conv.current_step() is None

    async def test_actors_do_not_share_drafts(self, harness):
        alice = harness.conversation()
        bob = harness.conversation(user_id=43, name="bob")
        await SUBMIT.start(alice)
        await SUBMIT.start(bob)
        await feed(harness, alice, harness.text("Alice Party"))
        await feed(harness, bob, harness.text("Bob Meetup"))

        assert (await alice.load_draft()).title == "Alice Party"
        assert (await bob.load_draft()).title == "Bob Meetup"
