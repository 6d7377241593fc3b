import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from babel import Locale
from polib import POEntry

CONTEXT_SEPARATOR = "\x04"


def key_from_msgid_and_context(msgid: str, context: Optional[str]) -> str:
    """Build the message key for a msgid and an optional context.

    Without a context the key is the msgid itself. With one, the context is
    joined with the gettext context separator, which never occurs in a
    plain-msgid key, so contextual keys cannot collide with plain ones.
    """
    if not context:
        return msgid
    return f"{msgid}{CONTEXT_SEPARATOR}{context}"


def add_unique(values: List[str], new_values: Iterable[str]):
    for value in new_values:
        if value not in values:
            values.append(value)


@dataclass(frozen=True)
class ReferenceContext:
    """A source location an item was extracted from."""
    path: str
    line_number: Optional[int] = None

    @classmethod
    def parse(cls, text: str) -> 'ReferenceContext':
        """Parse a "path:line" or "path" reference comment."""
        text = text.strip()
        path, sep, line = text.rpartition(":")
        if sep and path and line.isdigit():
            return cls(path, int(line))
        return cls(text)

    def to_comment(self) -> str:
        if self.line_number is None:
            return self.path
        return f"{self.path}:{self.line_number}"

    def __str__(self):
        return self.to_comment()


@dataclass
class TemplateItem:
    """A source string as found by scanning the project sources."""
    msg_key: str
    msgid: str
    comments: List[str] = field(default_factory=list)
    references: List[ReferenceContext] = field(default_factory=list)
    filename: Optional[str] = None

    @classmethod
    def from_polib_entry(cls, entry: POEntry, message_context_enabled=False, filename=None):
        """Create a TemplateItem from a polib template entry.

        Args:
            entry (polib.POEntry): The polib entry to create from
            message_context_enabled (bool): Whether extracted comments carry the message context
            filename (str): Owning template name when templates are generated per file

        Returns:
            TemplateItem: A new TemplateItem instance
        """
        comments = []
        if entry.comment:
            add_unique(comments, (c.strip() for c in entry.comment.split("\n") if c.strip() != ""))
        references = [ReferenceContext(path, int(line) if line and str(line).isdigit() else None)
                      for path, line in entry.occurrences]

        context = entry.msgctxt
        if not context and message_context_enabled and comments:
            context = comments[0]

        return cls(msg_key=key_from_msgid_and_context(entry.msgid, context),
                   msgid=entry.msgid,
                   comments=comments,
                   references=references,
                   filename=filename)

    @property
    def is_orphan(self) -> bool:
        return not self.references


@dataclass
class TranslationItem:
    """One translated message of a Translation.

    The comment and flag collections keep insertion order and hold each value once.
    An item without references is an orphan: it is no longer found in the sources
    and is written back out as a historical (#~) entry.
    """
    msg_key: str
    msgid: Optional[str] = None
    message: Optional[str] = None
    translator_comments: List[str] = field(default_factory=list)
    extracted_comments: List[str] = field(default_factory=list)
    flags: List[str] = field(default_factory=list)
    references: List[ReferenceContext] = field(default_factory=list)
    filename: Optional[str] = None

    @property
    def is_orphan(self) -> bool:
        return not self.references

    def union(self, other: 'TranslationItem'):
        """Fold a later occurrence of the same key into this item.

        The other occurrence's references are appended, and their comment forms are
        also added to the extracted comments, translator comments and flags. Existing
        PO files written by this store depend on that layout.
        """
        self.references.extend(other.references)
        references_as_comments = [r.to_comment() for r in other.references]
        add_unique(self.extracted_comments, references_as_comments)
        add_unique(self.translator_comments, references_as_comments)
        add_unique(self.flags, references_as_comments)
        return self


@dataclass
class Language:
    language_short_tag: str
    culture: Optional[Locale] = None

    def __str__(self):
        return self.language_short_tag


class Translation:
    """All items of one language, keyed by message key."""

    def __init__(self, language: Language, items: Optional[Dict[str, TranslationItem]] = None):
        self.language_information = language
        self.items: Dict[str, TranslationItem] = dict(items) if items else {}
        self._lock = threading.Lock()

    @property
    def language_short_tag(self) -> str:
        return self.language_information.language_short_tag

    def add_or_update(self, item: TranslationItem,
                      combine: Callable[[TranslationItem, TranslationItem], TranslationItem] = TranslationItem.union
                      ) -> TranslationItem:
        """Insert the item, or combine it into the existing item with the same key."""
        with self._lock:
            existing = self.items.get(item.msg_key)
            if existing is None:
                self.items[item.msg_key] = item
                return item
            combined = combine(existing, item)
            self.items[item.msg_key] = combined
            return combined

    def get_or_add(self, msg_key: str, factory: Callable[[str], TranslationItem]) -> TranslationItem:
        with self._lock:
            item = self.items.get(msg_key)
            if item is None:
                item = factory(msg_key)
                self.items[msg_key] = item
            return item

    def orphans(self) -> List[TranslationItem]:
        return [item for item in self.items.values() if item.is_orphan]

    def __len__(self):
        return len(self.items)

    def __contains__(self, msg_key):
        return msg_key in self.items

    def __getitem__(self, msg_key) -> TranslationItem:
        return self.items[msg_key]

    def __repr__(self):
        return f"Translation({self.language_short_tag!r}, {len(self.items)} items)"
