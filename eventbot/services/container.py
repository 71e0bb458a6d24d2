from dataclasses import dataclass

from config import Config
from eventbot.utils.messaging import Channel
from .archive_service import ArchiveService, build_archive_service
from .blacklist_service import BlacklistService, build_blacklist_service
from .event_service import EventService, build_event_service
from .moderation_service import ModerationService, build_moderation_service
from .staging import DraftStaging
from .template_service import TemplateService, build_template_service


@dataclass(frozen=True)
class ServiceContainer:
    channel: Channel
    events: EventService
    moderation: ModerationService
    templates: TemplateService
    blacklist: BlacklistService
    archive: ArchiveService
    staging: DraftStaging


def build_services(config: Config, channel: Channel) -> ServiceContainer:
    events = build_event_service(config.events)
    blacklist = build_blacklist_service()
    moderation = build_moderation_service(events, blacklist, channel, config)
    templates = build_template_service(config.events.max_templates)
    archive = build_archive_service(config.archive.retention_hours)
    return ServiceContainer(
        channel=channel,
        events=events,
        moderation=moderation,
        templates=templates,
        blacklist=blacklist,
        archive=archive,
        staging=DraftStaging(),
    )
