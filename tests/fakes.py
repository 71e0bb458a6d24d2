import asyncio
import itertools
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Optional

import aiohttp
import asyncpg
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage

from config import (
    ArchiveConfig,
    BotConfig,
    Config,
    DatabaseConfig,
    EventRules,
    RateLimitConfig,
    SupportConfig,
    VenueConfig,
)
from eventbot.conversations import Actor, Conversation, Incoming
from eventbot.database.repositories.blacklist import BlacklistedUser
from eventbot.database.repositories.events import Event, EventStatus
from eventbot.database.repositories.templates import EventTemplate
from eventbot.services.archive_service import ArchiveService
from eventbot.services.blacklist_service import BlacklistService
from eventbot.services.container import ServiceContainer
from eventbot.services.event_service import EventService
from eventbot.services.moderation_service import ModerationService
from eventbot.services.staging import DraftStaging
from eventbot.services.template_service import TemplateService
from eventbot.utils.callbacks import EventChoice, parse_action
from eventbot.utils.dates import utcnow

ADMIN_CHAT_ID = -1001
CHANNEL_ID = -1002
USER_ID = 42
ADMIN_ID = 7


@dataclass
class Sent:
    chat_id: Any
    text: Optional[str]
    reply_markup: Any
    message_id: int
    photo: Optional[bytes] = None


class FakeChannel:
    """Records every outbound call; ``fail_chats`` makes sends to those chats raise."""

    def __init__(self) -> None:
        self._ids = itertools.count(100)
        self.sent: list[Sent] = []
        self.edits: list[tuple[Any, int, str]] = []
        self.markup_edits: list[tuple[Any, int, Any]] = []
        self.deleted: list[tuple[Any, int]] = []
        self.answers: list[tuple[str, Optional[str], bool]] = []
        self.reactions: list[tuple[Any, int, str]] = []
        self.files: dict[str, bytes] = {}
        self.fail_chats: set[Any] = set()
        self.fail_edits = False
        self.fail_fetch = False
        self.fail_deletes = False

    async def send_text(self, chat_id, text, reply_markup=None) -> int:
        await asyncio.sleep(0)
        if chat_id in self.fail_chats:
            raise aiohttp.ClientError("send failed")
        message = Sent(chat_id, text, reply_markup, next(self._ids))
        self.sent.append(message)
        return message.message_id

    async def send_photo(self, chat_id, photo, caption=None, reply_markup=None) -> int:
        if chat_id in self.fail_chats:
            raise aiohttp.ClientError("send failed")
        message = Sent(chat_id, caption, reply_markup, next(self._ids), photo=photo)
        self.sent.append(message)
        return message.message_id

    async def edit_text(self, chat_id, message_id, text, reply_markup=None) -> None:
        if self.fail_edits:
            raise aiohttp.ClientError("edit failed")
        self.edits.append((chat_id, message_id, text))

    async def edit_markup(self, chat_id, message_id, reply_markup=None) -> None:
        self.markup_edits.append((chat_id, message_id, reply_markup))

    async def delete_message(self, chat_id, message_id) -> None:
        if self.fail_deletes:
            raise aiohttp.ClientError("delete failed")
        self.deleted.append((chat_id, message_id))

    async def answer_callback(self, callback_id, text=None, show_alert=False) -> None:
        self.answers.append((callback_id, text, show_alert))

    async def fetch_file(self, file_ref) -> bytes:
        if self.fail_fetch:
            raise aiohttp.ClientError("fetch failed")
        return self.files[file_ref]

    async def react(self, chat_id, message_id, emoji) -> None:
        self.reactions.append((chat_id, message_id, emoji))

    def sent_to(self, chat_id) -> list[Sent]:
        return [message for message in self.sent if message.chat_id == chat_id]


class FakeEventRepository:
    def __init__(self) -> None:
        self.events: dict[str, Event] = {}
        self.fail_delete = False

    async def get(self, event_id):
        return self.events.get(event_id)

    async def create(self, data):
        now = utcnow()
        event = Event(
            id=data["id"],
            title=data["title"],
            description=data.get("description") or "",
            location=data["location"],
            categories=tuple(data.get("categories") or ()),
            links=tuple(data.get("links") or ()),
            group_link=data.get("group_link"),
            image_base64=data.get("image_base64"),
            entry_date=data["entry_date"],
            start_date=data["start_date"],
            end_date=data["end_date"],
            submitter_id=data["submitter_id"],
            submitter_name=data["submitter_name"],
            status=EventStatus(data["status"]),
            created_at=data.get("created_at", now),
            updated_at=now,
        )
        self.events[event.id] = event
        return event

    async def update(self, event_id, data):
        event = self.events.get(event_id)
        if event is None:
            return None
        values = dict(data)
        for key in ("categories", "links"):
            if key in values:
                values[key] = tuple(values[key] or ())
        updated = replace(event, **values, updated_at=utcnow())
        self.events[event_id] = updated
        return updated

    async def delete(self, event_id):
        if self.fail_delete:
            raise asyncpg.PostgresError("delete failed")
        return self.events.pop(event_id, None) is not None

    async def list_by_submitter(self, submitter_id, statuses, starts_after=None):
        statuses = set(statuses)
        return sorted(
            (
                event
                for event in self.events.values()
                if event.submitter_id == submitter_id
                and event.status in statuses
                and (starts_after is None or event.start_date >= starts_after)
            ),
            key=lambda event: event.start_date,
        )

    async def list_overlapping(self, window_start, window_end, statuses):
        statuses = set(statuses)
        return [
            event
            for event in self.events.values()
            if event.start_date < window_end and event.end_date >= window_start and event.status in statuses
        ]

    async def list_ended_before(self, cutoff):
        return [event for event in self.events.values() if event.end_date < cutoff]

    async def list_submitters(self):
        counts: dict[int, tuple[str, int]] = {}
        for event in self.events.values():
            name, total = counts.get(event.submitter_id, (event.submitter_name, 0))
            counts[event.submitter_id] = (name, total + 1)
        return [(user_id, name, total) for user_id, (name, total) in counts.items()]


class FakeTemplateRepository:
    def __init__(self) -> None:
        self.templates: dict[str, EventTemplate] = {}

    async def get(self, template_id):
        return self.templates.get(template_id)

    async def list_by_owner(self, owner_id):
        return [template for template in self.templates.values() if template.owner_id == owner_id]

    async def count_by_owner(self, owner_id):
        return len(await self.list_by_owner(owner_id))

    async def create(self, data):
        template = EventTemplate(
            id=data["id"],
            owner_id=data["owner_id"],
            owner_name=data["owner_name"],
            name=data["name"],
            title=data["title"],
            description=data.get("description") or "",
            location=data["location"],
            categories=tuple(data.get("categories") or ()),
            links=tuple(data.get("links") or ()),
            group_link=data.get("group_link"),
            image_base64=data.get("image_base64"),
        )
        self.templates[template.id] = template
        return template

    async def update(self, template_id, data):
        template = self.templates.get(template_id)
        if template is None:
            return None
        values = dict(data)
        for key in ("categories", "links"):
            if key in values:
                values[key] = tuple(values[key] or ())
        updated = replace(template, **values)
        self.templates[template_id] = updated
        return updated

    async def delete(self, template_id):
        return self.templates.pop(template_id, None) is not None


class FakeBlacklistRepository:
    def __init__(self) -> None:
        self.users: dict[int, BlacklistedUser] = {}
        self.fail_create = False

    async def get(self, user_id):
        await asyncio.sleep(0)
        return self.users.get(user_id)

    async def create(self, user_id, user_name, banned_by, banned_by_name, reason):
        if self.fail_create:
            raise asyncpg.PostgresError("insert failed")
        if user_id in self.users:
            raise asyncpg.UniqueViolationError("duplicate key")
        entry = BlacklistedUser(user_id, user_name, banned_by, banned_by_name, reason, utcnow())
        self.users[user_id] = entry
        return entry

    async def delete(self, user_id):
        return self.users.pop(user_id, None) is not None

    async def list_all(self):
        return list(self.users.values())


class FakeArchiveRepository:
    def __init__(self) -> None:
        self.archived: dict[str, Event] = {}
        self.fail_create = False

    async def create(self, event):
        if self.fail_create:
            raise asyncpg.PostgresError("archive insert failed")
        self.archived.setdefault(event.id, event)


def make_config(**rules: Any) -> Config:
    values = {"require_approval": False}
    values.update(rules)
    return Config(
        bot=BotConfig(token="123:test"),
        database=DatabaseConfig(dsn="postgresql://localhost/test"),
        venues=VenueConfig(admin_chat_id=ADMIN_CHAT_ID, channel_id=CHANNEL_ID),
        events=EventRules(**values),
        rate_limit=RateLimitConfig(),
        archive=ArchiveConfig(),
        support=SupportConfig(),
    )


class Harness:
    """Services wired to in-memory fakes, plus helpers for driving flows."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.channel = FakeChannel()
        self.event_repo = FakeEventRepository()
        self.template_repo = FakeTemplateRepository()
        self.blacklist_repo = FakeBlacklistRepository()
        self.archive_repo = FakeArchiveRepository()
        events = EventService(self.event_repo, config.events)
        blacklist = BlacklistService(self.blacklist_repo)
        self.services = ServiceContainer(
            channel=self.channel,
            events=events,
            moderation=ModerationService(events, blacklist, self.channel, config),
            templates=TemplateService(self.template_repo, config.events.max_templates),
            blacklist=blacklist,
            archive=ArchiveService(self.event_repo, self.archive_repo, timedelta(hours=config.archive.retention_hours)),
            staging=DraftStaging(),
        )
        self.storage = MemoryStorage()
        self._callbacks = itertools.count(1)

    def conversation(self, user_id: int = USER_ID, name: str = "alice", chat_id: Optional[int] = None) -> Conversation:
        chat = chat_id if chat_id is not None else user_id
        state = FSMContext(storage=self.storage, key=StorageKey(bot_id=1, chat_id=chat, user_id=user_id))
        return Conversation(state, self.services, self.config, Actor(user_id, name), chat)

    def press(self, action, message_id: int = 1) -> Incoming:
        return Incoming(action=action, callback_id=f"cb-{next(self._callbacks)}", message_id=message_id)

    @staticmethod
    def text(value: str) -> Incoming:
        return Incoming(text=value, message_id=1)

    def local(self, moment: datetime) -> str:
        return moment.strftime(self.config.events.date_format)

    def tomorrow_at(self, hour: int) -> datetime:
        tomorrow = (utcnow() + timedelta(days=1)).astimezone(self.config.events.tz).date()
        return datetime(tomorrow.year, tomorrow.month, tomorrow.day, hour, 0)

    async def seed_event(self, **overrides: Any) -> Event:
        start = utcnow() + timedelta(days=2)
        data = {
            "id": overrides.pop("id", "evt1"),
            "title": "Jazz Night",
            "description": "Live jazz",
            "location": "Cafe Plaza",
            "categories": ("Music",),
            "links": (),
            "group_link": None,
            "image_base64": None,
            "entry_date": start - timedelta(hours=1),
            "start_date": start,
            "end_date": start + timedelta(hours=3),
            "submitter_id": USER_ID,
            "submitter_name": "alice",
            "status": EventStatus.PENDING,
        }
        extras = {key: overrides.pop(key) for key in list(overrides) if key not in data and key != "created_at"}
        data.update(overrides)
        event = await self.event_repo.create(data)
        if extras:
            event = replace(event, **extras)
            self.event_repo.events[event.id] = event
        return event



def offered_event_ids(markup) -> list[str]:
    """Event ids behind the choice buttons of an inline keyboard."""
    ids = []
    for row in markup.inline_keyboard:
        for button in row:
            action = parse_action(button.callback_data)
            if isinstance(action, EventChoice):
                ids.append(action.event_id)
    return ids
