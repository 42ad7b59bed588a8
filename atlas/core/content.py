"""
Content Data Model.

Lore entries are markdown documents grouped by category directory. The map
only needs a read-only lookup of ``{category, slug, title}`` summaries to
populate its link selectors and to title navigation prompts.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

DEFAULT_ORDER = 999


@dataclass
class ContentEntry:
    """
    A single lore document.

    Attributes:
        category: Directory name the entry lives in.
        slug: File name without extension.
        title: Frontmatter title (falls back to the slug).
        body: Markdown body without the frontmatter block.
        order: Sort key; entries without one sort last.
        metadata: Remaining frontmatter values.
    """

    category: str
    slug: str
    title: str
    body: str = ""
    order: int = DEFAULT_ORDER
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.category}/{self.slug}"

    def summary(self) -> "EntrySummary":
        return EntrySummary(category=self.category, slug=self.slug, title=self.title)


@dataclass(frozen=True)
class EntrySummary:
    """Minimal description of a lore entry used for linking."""

    category: str
    slug: str
    title: str

    @property
    def key(self) -> str:
        return f"{self.category}/{self.slug}"

    def to_dict(self) -> Dict[str, str]:
        return {"category": self.category, "slug": self.slug, "title": self.title}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EntrySummary":
        return cls(
            category=str(data["category"]),
            slug=str(data["slug"]),
            title=str(data.get("title") or data["slug"]),
        )


class ContentLookup:
    """
    Read-only lookup table over entry summaries.

    Feeds the category/slug selectors of the pin editor and resolves the
    title shown when asking to open a linked entry.
    """

    def __init__(self, summaries: Iterable[EntrySummary] = ()) -> None:
        self._summaries: List[EntrySummary] = list(summaries)
        self._by_key = {s.key: s for s in self._summaries}

    def __len__(self) -> int:
        return len(self._summaries)

    def title_for(self, category: str, slug: str) -> Optional[str]:
        """Title of the entry, or None if it does not exist."""
        summary = self._by_key.get(f"{category}/{slug}")
        return summary.title if summary else None

    def categories(self) -> List[str]:
        """Sorted distinct category names."""
        return sorted({s.category for s in self._summaries})

    def entries_in(self, category: Optional[str]) -> List[EntrySummary]:
        """Entries of one category sorted by title; empty for no category."""
        if not category:
            return []
        return sorted(
            (s for s in self._summaries if s.category == category),
            key=lambda s: s.title.lower(),
        )
