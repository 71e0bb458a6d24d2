from html import escape as html_escape
from typing import Any, Iterable

from config import EventRules
from eventbot.utils.dates import format_local
from eventbot.utils.i18n import t
from eventbot.utils.messaging import CAPTION_LIMIT, MESSAGE_LIMIT

CLIP_STEP = 10


def escape(value: Any) -> str:
    return html_escape(str(value), quote=False)


def format_link(url: str, label: str | None = None) -> str:
    href = url if url.lower().startswith(("http://", "https://")) else f"https://{url}"
    return f'<a href="{html_escape(href, quote=True)}">{escape(label or url)}</a>'


def format_user_mention(user_id: int, name: str | None) -> str:
    return f'<a href="tg://user?id={int(user_id)}">{escape(name or user_id)}</a>'


def format_event_text(
    content: Any,
    rules: EventRules,
    *,
    header: str | None = None,
    footer_lines: Iterable[str] = (),
) -> str:
    lines = _head_lines(content, header)
    if content.description:
        lines.append("")
        lines.append(escape(content.description))
    lines.append("")
    lines.extend(_detail_lines(content, rules))
    lines.extend(_link_lines(content))
    footer = list(footer_lines)
    if footer:
        lines.append("")
        lines.extend(footer)
    return "\n".join(lines).strip()


def format_event_caption(
    content: Any,
    rules: EventRules,
    *,
    header: str | None = None,
    footer_lines: Iterable[str] = (),
    limit: int = CAPTION_LIMIT,
) -> str:
    """Short form for photo captions.

    Title, location and categories are clipped as plain text before escaping until the caption
    fits ``limit``, so an entity or tag is never cut in half.
    """
    footer = list(footer_lines)
    width: int | None = None
    while True:
        lines = _head_lines(content, header, width)
        lines.append("")
        lines.extend(_detail_lines(content, rules, width))
        if footer:
            lines.append("")
            lines.extend(footer)
        caption = "\n".join(lines).strip()
        if len(caption) <= limit or width == 0:
            return caption
        if width is None:
            width = max(len(content.title or ""), len(content.location or ""), len(", ".join(content.categories or ())))
        width = max(width - CLIP_STEP, 0)


def format_event_details(content: Any) -> str:
    lines: list[str] = [t("event.details_header", title=escape(content.title or ""))]
    if content.description:
        lines.append("")
        lines.append(escape(content.description))
    link_lines = _link_lines(content)
    if link_lines:
        lines.append("")
        lines.extend(link_lines)
    return "\n".join(lines).strip()


def split_caption(full_text: str, caption: str, details: str) -> tuple[str, str | None]:
    """Return the photo caption and, when the text does not fit, the follow-up post."""
    if len(full_text) <= CAPTION_LIMIT:
        return full_text, None
    return fit_lines(caption, CAPTION_LIMIT), details


def fit_lines(text: str, limit: int) -> str:
    """Drop whole trailing lines until ``text`` fits; every rendered line closes its own tags."""
    lines = text.split("\n")
    while lines and len("\n".join(lines)) > limit:
        lines.pop()
    return "\n".join(lines).strip()



def format_review_footer(event: Any) -> list[str]:
    lines = [t("event.submitted_by", mention=format_user_mention(event.submitter_id, event.submitter_name), user_id=event.submitter_id)]
    lines.append(t("event.status_line", status=escape(event.status.value)))
    if event.updated_count:
        lines.append(t("event.edits_line", count=event.updated_count))
    lines.append(t("event.id_line", event_id=escape(event.id)))
    return lines


def review_header(*, is_edit: bool = False, is_push: bool = False) -> str:
    if is_push:
        return t("admin.header_push")
    if is_edit:
        return t("admin.header_edit")
    return t("admin.header_new")


def format_moderation_controls(event: Any, rules: EventRules, *, is_push: bool = False) -> str:
    header = t("admin.controls_header_push") if is_push else t("admin.controls_header")
    lines = [
        header,
        t("admin.controls_event", title=escape(event.title)),
        t("admin.controls_start", start=escape(format_local(event.start_date, rules.date_format, rules.tz))),
        *format_review_footer(event),
    ]
    return "\n".join(lines)


def format_remaining_edits(updated_count: int, max_edits: int) -> str:
    if max_edits <= 0:
        return "∞"
    return str(max(max_edits - updated_count, 0))


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _clip(value: str, width: int | None) -> str:
    return value if width is None else truncate(value, width)


def _head_lines(content: Any, header: str | None, width: int | None = None) -> list[str]:
    lines: list[str] = []
    if header:
        lines.append(header)
        lines.append("")
    lines.append(t("event.title", title=escape(_clip(content.title or "", width))))
    return lines


def _detail_lines(content: Any, rules: EventRules, width: int | None = None) -> list[str]:
    lines: list[str] = []
    if content.location:
        lines.append(t("event.location", location=escape(_clip(content.location, width))))
    if content.categories:
        lines.append(t("event.categories", categories=escape(_clip(", ".join(content.categories), width))))
    for key, name in (("event.entry", "entry_date"), ("event.start", "start_date"), ("event.end", "end_date")):
        value = getattr(content, name, None)
        if value is not None:
            lines.append(t(key, date=escape(format_local(value, rules.date_format, rules.tz))))
    return lines


def _link_lines(content: Any) -> list[str]:
    lines: list[str] = []
    if content.links:
        rendered = ", ".join(format_link(link) for link in content.links)
        lines.append(t("event.links", links=rendered))
    if content.group_link:
        lines.append(t("event.group_link", link=format_link(content.group_link)))
    return lines


def chunk_lines(lines: Iterable[str], limit: int = MESSAGE_LIMIT) -> list[str]:
    chunks: list[str] = []
    current: list[str] = []
    size = 0
    for line in lines:
        if current and size + len(line) + 1 > limit:
            chunks.append("\n".join(current))
            current, size = [], 0
        current.append(line)
        size += len(line) + 1
    if current:
        chunks.append("\n".join(current))
    return chunks
