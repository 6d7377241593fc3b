"""Reading and writing of gettext PO and POT files.

Files follow http://www.gnu.org/s/hello/manual/gettext/PO-Files.html with the
layout Poedit expects: comments, then msgctxt/msgid/msgstr, then a blank line.
Entries that are no longer referenced by the sources (orphans) are kept and
written as historical entries, every one of their lines prefixed with "#~ ".
"""

import re
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Union

from po_store.translation import (Language, ReferenceContext, TemplateItem, Translation, TranslationItem,
                                  add_unique, key_from_msgid_and_context)
from po_store.utils.logging_setup import get_logger

logger = get_logger("po_codec")

MSGCTXT = "msgctxt"
MSGID = "msgid"
MSGSTR = "msgstr"
HISTORICAL_PREFIX = "#~"
HISTORICAL_LINE_PREFIX = "#~ "
GENERATOR = "po-store"

_UNESCAPE_RE = re.compile(r"\\[abfnrtv?\"'\\]|\\[0-3]?[0-7]{1,2}|\\u[0-9a-fA-F]{4}|.", re.DOTALL)
_SIMPLE_ESCAPES = {
    'a': '\a',
    'b': '\b',
    'f': '\f',
    'n': '\n',
    'r': '\r',
    't': '\t',
    'v': '\v',
}


def unquote(line: Optional[str], quotechar='"') -> Optional[str]:
    """Return the text strictly between the first and last quote of a line.

    Returns None when the line holds fewer than two quote characters, which is
    what ends a run of continuation lines.
    """
    if line is None:
        return None
    begin = line.find(quotechar)
    if begin == -1:
        return None
    end = line.rfind(quotechar)
    if end <= begin:
        return None
    return line[begin + 1:end]


def unescape(s: str) -> str:
    """Convert C escape sequences in a PO string to the characters they stand for.

    Handles the single character escapes, octal escapes of one to three digits and
    \\u followed by four hex digits. A backslash before any other character is kept.
    """
    parts = []
    for match in _UNESCAPE_RE.finditer(s):
        token = match.group()
        if len(token) == 1:
            parts.append(token)
        elif '0' <= token[1] <= '7':
            parts.append(chr(int(token[1:], 8)))
        elif token[1] == 'u':
            parts.append(chr(int(token[2:], 16)))
        else:
            parts.append(_SIMPLE_ESCAPES.get(token[1], token[1]))
    return "".join(parts)


def escape(s: Optional[str]) -> Optional[str]:
    """Escape a value for writing. Only double quotes are escaped.

    None and whitespace-only values come back as None and are written as "".
    """
    if s is None or s.strip() == "":
        return None
    return s.replace('"', '\\"')


def remove_comment_if_historical(line: Optional[str]) -> Optional[str]:
    """Strip the historical marker from a line of an orphaned entry."""
    if line is None or line.strip() == "":
        return line
    if line.startswith(HISTORICAL_PREFIX):
        return line[len(HISTORICAL_PREFIX):].strip()
    return line


class _LineReader:
    """Forward-only line source with one line of push back."""

    def __init__(self, lines: Iterable[str]):
        self._lines: Iterator[str] = iter(lines)
        self._pushed_back: List[str] = []
        self.line_number = 0

    def readline(self) -> Optional[str]:
        if self._pushed_back:
            return self._pushed_back.pop()
        line = next(self._lines, None)
        if line is None:
            return None
        self.line_number += 1
        return line.rstrip("\r\n")

    def push_back(self, line: Optional[str]):
        if line is not None:
            self._pushed_back.append(line)


def _comment(line: Optional[str]) -> Optional[str]:
    """The comment held by a line, without any historical marker, or None if it holds none."""
    if line is None:
        return None
    if line.startswith(HISTORICAL_PREFIX):
        line = remove_comment_if_historical(line)
    if line.startswith("#") and not line.startswith(HISTORICAL_PREFIX):
        return line
    return None


def _starts_body(line: str) -> bool:
    return line.startswith(MSGCTXT) or line.startswith(MSGID)


def _read_continuation(reader: _LineReader, parts: List[str], skip_blank_lines: bool, source: str) -> Optional[str]:
    """Append the values of the quoted lines following a keyword line.

    Returns the first line that is not a continuation line, or None at end of input.
    """
    while True:
        line = reader.readline()
        if line is None:
            return None
        stripped = remove_comment_if_historical(line)
        if stripped.strip() == "":
            if skip_blank_lines:
                logger.warning(f"Skipping empty line {reader.line_number} inside entry in {source}")
                continue
            return line
        value = unquote(stripped) if stripped.startswith('"') else None
        if value is None:
            return line
        parts.append(value)


def _parse_body(reader: _LineReader, line: str, source: str) -> Optional[TranslationItem]:
    """Parse the msgctxt/msgid/msgstr part of an entry starting at ``line``.

    The line that ends the body is pushed back onto the reader.
    """
    msgctxt = None
    line = remove_comment_if_historical(line)
    if line.startswith(MSGCTXT):
        # Written verbatim from the first extracted comment, so not unescaped
        msgctxt = unquote(line)
        line = remove_comment_if_historical(reader.readline())

    if line is None or not line.startswith(MSGID):
        logger.warning(f"Entry without msgid near line {reader.line_number} in {source}, skipping")
        reader.push_back(line)
        return None

    msgid_parts = [unquote(line) or ""]
    line = _read_continuation(reader, msgid_parts, skip_blank_lines=True, source=source)
    msgid = unescape("".join(msgid_parts))
    item = TranslationItem(msg_key=key_from_msgid_and_context(msgid, msgctxt), msgid=msgid)

    stripped = remove_comment_if_historical(line)
    if stripped is not None and stripped.startswith(MSGSTR):
        msgstr_parts = [unquote(stripped) or ""]
        line = _read_continuation(reader, msgstr_parts, skip_blank_lines=False, source=source)
        item.message = unescape("".join(msgstr_parts))

    reader.push_back(line)
    return item


def _classify_comment(line: str, translator_comments, extracted_comments, flags, references):
    kind = line[1] if len(line) > 1 else ""
    if kind == '.':
        text = line[2:].strip()
        if text:
            add_unique(extracted_comments, [text])
    elif kind == ':':
        text = line[2:].strip()
        if text:
            references.append(ReferenceContext.parse(text))
    elif kind == ',':
        text = line[2:].strip()
        if text:
            add_unique(flags, [text])
    elif kind == '|':
        # Previous msgid, not used
        pass
    else:
        text = line[1:].strip()
        if text:
            add_unique(translator_comments, [text])


def parse_lines(lines: Iterable[str], translation: Optional[Translation] = None,
                langtag: str = "", source: str = "<lines>") -> Translation:
    """Parse the lines of one PO file into a Translation.

    Passing the same Translation for several files unions them: an entry whose key
    was already seen is folded into the existing item with TranslationItem.union.

    Args:
        lines: The lines of the file, with or without line endings
        translation: Translation to add to, a new one is created when None
        langtag: Language tag for a newly created Translation
        source: Name used in log messages

    Returns:
        Translation: The translation the items were added to
    """
    if translation is None:
        translation = Translation(Language(langtag))
    reader = _LineReader(lines)

    while True:
        line = reader.readline()
        if line is None:
            break

        translator_comments: List[str] = []
        extracted_comments: List[str] = []
        flags: List[str] = []
        references: List[ReferenceContext] = []
        item_started = False

        # Comments, flags and references describing the next entry, "#~ "-prefixed for orphans
        comment = _comment(line)
        while comment is not None:
            item_started = True
            _classify_comment(comment, translator_comments, extracted_comments, flags, references)
            line = reader.readline()
            comment = _comment(line)

        if line is None:
            break

        historical = line.startswith(HISTORICAL_PREFIX)
        if not (item_started or historical or _starts_body(line)):
            continue
        if item_started and line.strip() == "":
            logger.warning(f"Comments without entry before line {reader.line_number} in {source}")
            continue

        item = _parse_body(reader, line, source)
        if item is None:
            continue
        if item.msgid == "" and not references and not historical:
            # Header entry. Whitespace-only msgids are also written as "", but those
            # entries carry references, or are historical when orphaned.
            continue

        item.translator_comments = translator_comments
        item.extracted_comments = extracted_comments
        item.flags = flags
        item.references = references
        translation.add_or_update(item)

    return translation


def parse_file(path: str, translation: Optional[Translation] = None, langtag: str = "") -> Translation:
    logger.debug(f"Reading file: {path}")
    with open(path, "r", encoding="utf-8-sig") as f:
        return parse_lines(f, translation, langtag=langtag, source=path)


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """Format a time the way the PO header dates are written, e.g. 2024-05-01 13:45+02:00."""
    moment = moment or datetime.now()
    if moment.tzinfo is None:
        moment = moment.astimezone()
    offset = moment.strftime("%z")
    return moment.strftime("%Y-%m-%d %H:%M") + offset[:3] + ":" + offset[3:]


def output_header(pot_date: Optional[str] = None, now: Optional[datetime] = None) -> List[str]:
    """Header entry written at the top of every file.

    ``pot_date`` is the POT-Creation-Date line of an existing template, reused verbatim.
    The utf-8 declaration is needed for Poedit to read non-ASCII text correctly.
    """
    timestamp = format_timestamp(now)
    has_pot_date = pot_date is not None and pot_date.strip() != ""
    lines = [
        'msgid ""',
        'msgstr ""',
        '"Project-Id-Version: \\n"',
        pot_date if has_pot_date else f'"POT-Creation-Date: {timestamp}\\n"',
    ]
    if has_pot_date:
        lines.append(f'"PO-Revision-Date: {timestamp}\\n"')
    lines.extend([
        '"MIME-Version: 1.0\\n"',
        '"Content-Type: text/plain; charset=utf-8\\n"',
        '"Content-Transfer-Encoding: 8bit\\n"',
        f'"X-Generator: {GENERATOR}\\n"',
        '',
    ])
    return lines


def write_string(keyword: str, value: Optional[str], has_references: bool) -> List[str]:
    """Lines for a msgctxt, msgid or msgstr value.

    IN : a<LF>b
    OUT: msgid ""
         "a\\n"
         "b"

    Without references every line gets the historical prefix.
    """
    value = (value or "").replace("\r\n", "\n")
    if "\n" in value:
        segments = value.split("\n")
        lines = [f'{keyword} ""']
        lines.extend(f'"{segment}\\n"' for segment in segments[:-1])
        lines.append(f'"{segments[-1]}"')
    else:
        lines = [f'{keyword} "{value}"']
    if not has_references:
        lines = [HISTORICAL_LINE_PREFIX + line for line in lines]
    return lines


def order_items(items: Iterable[Union[TranslationItem, TemplateItem]]):
    """Non-orphan items first, then orphans, each group in ordinal key order."""
    return sorted(items, key=lambda item: (item.is_orphan, item.msg_key))


def _distinct(values) -> List:
    return list(dict.fromkeys(values or []))


def serialize_item(item: TranslationItem, message_context_enabled=False) -> List[str]:
    """Lines of one entry. Every line of an orphan carries the historical prefix."""
    references = _distinct(item.references)
    has_references = len(references) > 0

    lines = []
    for comment in _distinct(item.translator_comments):
        lines.append("# " + comment)
    for comment in _distinct(item.extracted_comments):
        lines.append("#. " + comment)
    for reference in references:
        lines.append("#: " + reference.to_comment())
    for flag in _distinct(item.flags):
        lines.append("#, " + flag)
    if not has_references:
        lines = [HISTORICAL_LINE_PREFIX + line for line in lines]

    if message_context_enabled and item.extracted_comments:
        lines.extend(write_string(MSGCTXT, item.extracted_comments[0], has_references))
    lines.extend(write_string(MSGID, escape(item.msgid), has_references))
    lines.extend(write_string(MSGSTR, escape(item.message), has_references))
    lines.append("")
    return lines


def serialize_translation(items: Iterable[TranslationItem], pot_date: Optional[str] = None,
                          message_context_enabled=False, now: Optional[datetime] = None) -> List[str]:
    """Lines of a translation (.po) file holding the given items."""
    lines = output_header(pot_date, now)
    for item in order_items(items):
        lines.extend(serialize_item(item, message_context_enabled))
    return lines


def serialize_template(items: Union[Dict[str, TemplateItem], Iterable[TemplateItem]],
                       message_context_enabled=False, now: Optional[datetime] = None) -> List[str]:
    """Lines of a template (.pot) file. Every msgstr is empty so editors can load it."""
    if isinstance(items, dict):
        items = items.values()
    lines = output_header(now=now)
    for item in order_items(items):
        for comment in item.comments or []:
            lines.append("#. " + comment)
        for reference in item.references:
            lines.append("#: " + reference.to_comment())
        if message_context_enabled and item.comments:
            lines.extend(write_string(MSGCTXT, item.comments[0], True))
        lines.extend(write_string(MSGID, escape(item.msgid), True))
        lines.extend(write_string(MSGSTR, "", True))
        lines.append("")
    return lines
