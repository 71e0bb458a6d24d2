from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

DATE_FIELDS = ("entry_date", "start_date", "end_date")


@dataclass
class Draft:
    title: Optional[str] = None
    description: str = ""
    location: Optional[str] = None
    categories: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)
    group_link: Optional[str] = None
    image_base64: Optional[str] = None
    entry_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @property
    def has_dates(self) -> bool:
        return all(getattr(self, name) is not None for name in DATE_FIELDS)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for name in DATE_FIELDS:
            value = data[name]
            data[name] = value.isoformat() if value else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Draft":
        if not data:
            return cls()
        values = dict(data)
        for name in DATE_FIELDS:
            raw = values.get(name)
            values[name] = datetime.fromisoformat(raw) if raw else None
        values["categories"] = list(values.get("categories") or ())
        values["links"] = list(values.get("links") or ())
        return cls(**values)

    @classmethod
    def from_source(cls, source: Any, *, with_dates: bool = True) -> "Draft":
        """Build a draft from an ``Event`` or an ``EventTemplate``."""
        draft = cls(
            title=source.title,
            description=source.description or "",
            location=source.location,
            categories=list(source.categories),
            links=list(source.links),
            group_link=source.group_link,
            image_base64=source.image_base64,
        )
        if with_dates:
            draft.entry_date = source.entry_date
            draft.start_date = source.start_date
            draft.end_date = source.end_date
        return draft

    def content_fields(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description or "",
            "location": self.location,
            "categories": tuple(self.categories),
            "links": tuple(self.links),
            "group_link": self.group_link,
            "image_base64": self.image_base64,
        }
