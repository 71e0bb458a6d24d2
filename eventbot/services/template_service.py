import logging
from enum import Enum
from typing import Sequence
from uuid import uuid4

import asyncpg

from eventbot.database.pool import get_pool
from eventbot.database.repositories.templates import EventTemplate, TemplateRepository
from eventbot.services.draft import Draft

logger = logging.getLogger(__name__)


class TemplateSaveOutcome(Enum):
    SAVED = "saved"
    LIMIT_REACHED = "limit_reached"
    FAILED = "failed"


class TemplateService:
    def __init__(self, repository: TemplateRepository, max_templates: int) -> None:
        self._repository = repository
        self._max_templates = max_templates

    @property
    def max_templates(self) -> int:
        return self._max_templates

    async def save_from_draft(self, owner_id: int, owner_name: str, name: str, draft: Draft) -> TemplateSaveOutcome:
        if await self._repository.count_by_owner(owner_id) >= self._max_templates:
            return TemplateSaveOutcome.LIMIT_REACHED
        data = {
            "id": uuid4().hex,
            "owner_id": owner_id,
            "owner_name": owner_name,
            "name": name,
            **draft.content_fields(),
        }
        try:
            template = await self._repository.create(data)
        except asyncpg.PostgresError as e:
            logger.error(f"[save_from_draft] owner_id={owner_id}, error={e}")
            return TemplateSaveOutcome.FAILED
        logger.info(f"[save_from_draft] template_id={template.id}, owner_id={owner_id}")
        return TemplateSaveOutcome.SAVED

    async def list_for_owner(self, owner_id: int) -> Sequence[EventTemplate]:
        return await self._repository.list_by_owner(owner_id)

    async def get_owned(self, template_id: str, owner_id: int) -> EventTemplate | None:
        template = await self._repository.get(template_id)
        if template is None or template.owner_id != owner_id:
            return None
        return template

    async def delete_owned(self, template_id: str, owner_id: int) -> bool:
        if await self.get_owned(template_id, owner_id) is None:
            return False
        return await self._repository.delete(template_id)

    async def refresh_from_draft(self, template_id: str, draft: Draft) -> bool:
        try:
            updated = await self._repository.update(template_id, draft.content_fields())
        except asyncpg.PostgresError as e:
            logger.warning(f"[refresh_from_draft] template_id={template_id}, error={e}")
            return False
        if updated is None:
            logger.warning(f"[refresh_from_draft] template_id={template_id} vanished")
            return False
        return True


def build_template_service(max_templates: int) -> TemplateService:
    pool = get_pool()
    repository = TemplateRepository(pool)
    return TemplateService(repository, max_templates)
