"""
Content Service Module.

Loads lore entries from the content directory::

    content/
        places/
            harbor.md
        people/
            the-cartographer.md

Each file starts with a frontmatter block read by the ``meta`` extension of
the markdown library (``key: value`` lines, optionally fenced with ``---``).
Entries are ordered by their ``order`` key; entries without one sort last.
"""

import logging
import os
import re
from typing import Dict, List, Optional

import markdown

from atlas.core.content import DEFAULT_ORDER, ContentEntry, EntrySummary

logger = logging.getLogger(__name__)

CONTENT_EXTENSIONS = (".md", ".mdx")
MARKDOWN_EXTENSIONS = ["meta", "extra", "nl2br"]

_FRONTMATTER = re.compile(r"\A---\s*\n.*?\n(?:---|\.\.\.)\s*(?:\n|\Z)", re.DOTALL)
_SAFE_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


def _first(meta: Dict[str, List[str]], key: str) -> Optional[str]:
    values = meta.get(key)
    if not values:
        return None
    return " ".join(v.strip() for v in values).strip() or None


def _parse_order(value: Optional[str], path: str) -> int:
    if value is None:
        return DEFAULT_ORDER
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer order '{value}' in {path}")
        return DEFAULT_ORDER


class ContentService:
    """
    Read-only access to the lore entries on disk.
    """

    def __init__(self, content_dir: str) -> None:
        """
        Args:
            content_dir: Root directory with one sub-directory per category.
        """
        self.content_dir = content_dir

    def _parse_file(self, category: str, slug: str, path: str) -> ContentEntry:
        with open(path, "r", encoding="utf-8") as f:
            raw = f.read()

        md = markdown.Markdown(extensions=MARKDOWN_EXTENSIONS)
        md.convert(raw)
        meta: Dict[str, List[str]] = getattr(md, "Meta", {})

        body = _FRONTMATTER.sub("", raw, count=1)
        if body == raw and meta:
            # Unfenced frontmatter ends at the first blank line.
            body = raw.split("\n\n", 1)[1] if "\n\n" in raw else ""

        metadata = {
            key: (values[0] if len(values) == 1 else values)
            for key, values in meta.items()
            if key not in ("title", "order")
        }
        return ContentEntry(
            category=category,
            slug=slug,
            title=_first(meta, "title") or slug,
            body=body.lstrip("\n"),
            order=_parse_order(_first(meta, "order"), path),
            metadata=metadata,
        )

    def get_categories(self) -> List[str]:
        """Sorted category directory names."""
        if not os.path.isdir(self.content_dir):
            return []
        return sorted(
            name
            for name in os.listdir(self.content_dir)
            if os.path.isdir(os.path.join(self.content_dir, name))
        )

    def get_all_entries(self) -> List[ContentEntry]:
        """All entries, ordered by ``order`` then category and slug."""
        entries: List[ContentEntry] = []
        for category in self.get_categories():
            category_dir = os.path.join(self.content_dir, category)
            for filename in sorted(os.listdir(category_dir)):
                slug, ext = os.path.splitext(filename)
                if ext not in CONTENT_EXTENSIONS:
                    continue
                path = os.path.join(category_dir, filename)
                try:
                    entries.append(self._parse_file(category, slug, path))
                except (OSError, UnicodeDecodeError) as e:
                    logger.error(f"Skipping unreadable entry {path}: {e}")
        return sorted(entries, key=lambda e: (e.order, e.category, e.slug))

    def get_entries_by_category(self, category: str) -> List[ContentEntry]:
        return [e for e in self.get_all_entries() if e.category == category]

    def get_entry(self, category: str, slug: str) -> Optional[ContentEntry]:
        """
        Loads one entry, or None if it does not exist.

        Names containing anything but letters, digits, ``_`` and ``-`` are
        rejected so paths cannot escape the content directory.
        """
        if not (_SAFE_NAME.match(category or "") and _SAFE_NAME.match(slug or "")):
            return None
        for ext in CONTENT_EXTENSIONS:
            path = os.path.join(self.content_dir, category, f"{slug}{ext}")
            if os.path.isfile(path):
                return self._parse_file(category, slug, path)
        return None

    def get_summaries(self) -> List[EntrySummary]:
        """Ordered ``{category, slug, title}`` summaries for pin linking."""
        return [entry.summary() for entry in self.get_all_entries()]

    @staticmethod
    def render_html(entry: ContentEntry) -> str:
        """Renders an entry body to HTML."""
        return markdown.markdown(entry.body, extensions=["extra", "nl2br"])
