import re
from typing import Any, Dict, List, Tuple

import frontmatter
from frontmatter.default_handlers import BaseHandler

from app.settings import Settings, settings

# Serialization order of the fields the blog generator understands.
RECOGNIZED_FIELDS: Tuple[str, ...] = (
    "title",
    "author",
    "date",
    "tag",
    "twitter_id",
    "github_id",
    "mail",
    "ogp_url",
    "description",
    "url",
    "site_name",
    "twitter_site",
    "featured",
)

DELIMITER = "---"
LINE_PATTERN = re.compile(r"^(\w+):\s*(.*)")
INLINE_LIST_PATTERN = re.compile(r"^\[(.*)\]$")


class FlatMetaHandler(BaseHandler):
    """
    Front matter as flat ``key: value`` lines.

    Unlike YAML, values are never coerced: dates and numbers stay strings.
    Only ``[a, b]`` lists and the literals ``true``/``false`` are typed.
    """

    FM_BOUNDARY = re.compile(r"^---\s*$", re.MULTILINE)
    START_DELIMITER = DELIMITER
    END_DELIMITER = DELIMITER

    def detect(self, text: str) -> bool:
        return text.split("\n", 1)[0].strip() == DELIMITER

    def split(self, text: str) -> Tuple[str, str]:
        lines = text.split("\n")
        if lines[0].strip() != DELIMITER:
            raise ValueError("No opening front matter delimiter")

        for end, line in enumerate(lines[1:], start=1):
            if line.strip() == DELIMITER:
                break
        else:
            raise ValueError("No closing front matter delimiter")

        fm = "\n".join(lines[1:end])
        body = "\n".join(lines[end + 1 :]).removeprefix("\n")
        return fm, body

    def load(self, fm: str) -> Dict[str, Any]:
        meta: Dict[str, Any] = {}
        for line in fm.split("\n"):
            match = LINE_PATTERN.match(line)
            if not match:
                continue
            key, raw = match.groups()
            meta[key] = _parse_value(raw)
        return meta

    def export(self, metadata: Dict[str, Any], **kwargs) -> str:
        keys = [k for k in RECOGNIZED_FIELDS if k in metadata]
        keys += [k for k in metadata if k not in RECOGNIZED_FIELDS]
        return "\n".join(f"{key}: {_format_value(metadata[key])}" for key in keys)


handler = FlatMetaHandler()


def parse_front_matter(raw: str) -> frontmatter.Post:
    """Split raw markdown into metadata and body; no front matter -> empty metadata."""
    post = frontmatter.Post(raw)
    if not handler.detect(raw):
        return post
    try:
        fm, body = handler.split(raw)
    except ValueError:
        return post

    post.content = body
    post.metadata.update(handler.load(fm))
    return post


def default_meta(settings_obj: Settings = settings) -> Dict[str, Any]:
    return {
        "author": settings_obj.POST_AUTHOR,
        "twitter_id": settings_obj.TWITTER_ID,
        "github_id": settings_obj.GITHUB_ID,
        "mail": settings_obj.MAIL,
        "site_name": settings_obj.SITE_NAME,
        "twitter_site": settings_obj.TWITTER_SITE,
    }


def generate_front_matter(
    meta: Dict[str, Any],
    body: str,
    slug: str,
    settings_obj: Settings = settings,
) -> str:
    supplied = {k: v for k, v in meta.items() if v is not None}
    merged = {**default_meta(settings_obj), **supplied}
    if not merged.get("url"):
        merged["url"] = post_url(slug, settings_obj)
    merged.setdefault("tag", [])
    merged.setdefault("featured", False)

    fields = {key: merged.get(key, "") for key in RECOGNIZED_FIELDS}
    fields.update({k: v for k, v in merged.items() if k not in fields})

    return "\n".join(
        [DELIMITER, handler.export(fields), DELIMITER, "", body]
    )


def post_url(slug: str, settings_obj: Settings = settings) -> str:
    return f"{settings_obj.SITE_URL.rstrip('/')}/posts/{slug}.html"


def slug_from_path(path: str) -> str:
    # posts/slug.md -> slug
    name = path.rsplit("/", 1)[-1]
    return name.removesuffix(".md")


def _parse_value(raw: str) -> Any:
    list_match = INLINE_LIST_PATTERN.match(raw)
    if list_match:
        inner = list_match.group(1)
        return [item.strip() for item in inner.split(",")] if inner.strip() else []
    if raw == "true":
        return True
    if raw == "false":
        return False
    return raw


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return f"[{', '.join(str(item) for item in value)}]"
    return str(value)


def as_tag_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    # true/false and anything else unexpected carry no tags
    return []


def as_text(value: Any) -> str:
    if value is None or value is False:
        return ""
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value)
