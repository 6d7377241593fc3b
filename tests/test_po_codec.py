"""Tests for reading and writing PO text.

Covers:
  - Quote extraction, unescaping and escaping
  - Comment classification and historical (#~) entries
  - Duplicate keys across files
  - Tolerance of malformed entries
  - Ordering and the historical prefix when writing
"""

from datetime import datetime, timezone

import polib
import pytest

from po_store import po_codec
from po_store.translation import (CONTEXT_SEPARATOR, Language, ReferenceContext, TemplateItem, Translation,
                                  TranslationItem)

FIXED_NOW = datetime(2024, 5, 1, 13, 45, tzinfo=timezone.utc)


def _lines(text):
    return text.splitlines()


def _triples(translation):
    return {(item.msg_key, item.msgid, item.message) for item in translation.items.values()}


def _body(lines):
    """Lines after the header entry."""
    return lines[lines.index("") + 1:]


# ------------------------------------------------------------------
# Quoting and escaping
# ------------------------------------------------------------------

class TestUnquote:

    def test_text_between_first_and_last_quote(self):
        assert po_codec.unquote('msgid "say \\"hi\\""') == 'say \\"hi\\"'

    def test_empty_value(self):
        assert po_codec.unquote('msgstr ""') == ""

    def test_no_value_with_fewer_than_two_quotes(self):
        assert po_codec.unquote('msgid "broken') is None
        assert po_codec.unquote("#: file.py:1") is None
        assert po_codec.unquote(None) is None


class TestUnescape:

    @pytest.mark.parametrize("escaped, expected", [
        ("a\\nb", "a\nb"),
        ("tab\\there", "tab\there"),
        ("\\a\\b\\f\\r\\v", "\a\b\f\r\v"),
        ('\\"quoted\\"', '"quoted"'),
        ("it\\'s", "it's"),
        ("back\\\\slash", "back\\slash"),
    ])
    def test_simple_escapes(self, escaped, expected):
        assert po_codec.unescape(escaped) == expected

    def test_octal_escapes(self):
        assert po_codec.unescape("\\101\\102") == "AB"
        assert po_codec.unescape("\\0") == "\0"
        assert po_codec.unescape("\\12") == "\n"

    def test_unicode_escape(self):
        assert po_codec.unescape("\\u00e5ngstr\\u00F6m") == "ångström"

    def test_unknown_escape_is_kept(self):
        assert po_codec.unescape("\\z") == "\\z"

    def test_plain_text_unchanged(self):
        assert po_codec.unescape("Hello, world") == "Hello, world"


class TestEscape:

    def test_only_quotes_are_escaped(self):
        assert po_codec.escape('a "b" \\n') == 'a \\"b\\" \\n'

    def test_whitespace_only_value_is_absent(self):
        assert po_codec.escape("   ") is None
        assert po_codec.escape("") is None
        assert po_codec.escape(None) is None


# ------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------

class TestParse:

    def test_comment_classification(self):
        translation = po_codec.parse_lines(_lines(
            '# translator note\n'
            '#. extracted note\n'
            '#: views/home.py:12\n'
            '#: views/base.py\n'
            '#, python-format\n'
            '#| msgid "Old text"\n'
            'msgid "Hello %s"\n'
            'msgstr "Hej %s"\n'
        ), langtag="sv")

        item = translation["Hello %s"]
        assert translation.language_short_tag == "sv"
        assert item.translator_comments == ["translator note"]
        assert item.extracted_comments == ["extracted note"]
        assert item.references == [ReferenceContext("views/home.py", 12), ReferenceContext("views/base.py")]
        assert item.flags == ["python-format"]
        assert item.message == "Hej %s"
        assert not item.is_orphan

    def test_header_entry_is_not_an_item(self):
        translation = po_codec.parse_lines(_lines(
            'msgid ""\n'
            'msgstr ""\n'
            '"Project-Id-Version: \\n"\n'
            '"Content-Type: text/plain; charset=utf-8\\n"\n'
            '\n'
            '#: a.py:1\n'
            'msgid "Yes"\n'
            'msgstr "Ja"\n'
        ))

        assert list(translation.items) == ["Yes"]

    def test_commented_header_entry_is_not_an_item(self):
        translation = po_codec.parse_lines(_lines(
            '# SOME DESCRIPTIVE TITLE.\n'
            '#, fuzzy\n'
            'msgid ""\n'
            'msgstr ""\n'
            '"Content-Type: text/plain; charset=utf-8\\n"\n'
            '\n'
            '#: a.py:1\n'
            'msgid "Yes"\n'
            'msgstr "Ja"\n'
        ))

        assert list(translation.items) == ["Yes"]

    def test_empty_comments_are_dropped(self):
        translation = po_codec.parse_lines(_lines(
            '#\n'
            '#.\n'
            '#. \n'
            '#,\n'
            '#: a.py:1\n'
            'msgid "Yes"\n'
            'msgstr "Ja"\n'
        ))

        item = translation["Yes"]
        assert item.translator_comments == []
        assert item.extracted_comments == []
        assert item.flags == []
        assert 'msgctxt ""' not in po_codec.serialize_item(item, message_context_enabled=True)

    def test_historical_comments_belong_to_the_orphan(self):
        translation = po_codec.parse_lines(_lines(
            '#~ # translator note\n'
            '#~ #. extracted note\n'
            '#~ #, fuzzy\n'
            '#~ msgid "Gone"\n'
            '#~ msgstr "Borta"\n'
        ))

        item = translation["Gone"]
        assert item.is_orphan
        assert item.message == "Borta"
        assert item.translator_comments == ["translator note"]
        assert item.extracted_comments == ["extracted note"]
        assert item.flags == ["fuzzy"]

    def test_multi_line_values_are_joined(self):
        translation = po_codec.parse_lines(_lines(
            '#: a.py:1\n'
            'msgid ""\n'
            '"First line\\n"\n'
            '"Second line"\n'
            'msgstr ""\n'
            '"Forsta raden\\n"\n'
            '"Andra raden"\n'
        ))

        item = translation["First line\nSecond line"]
        assert item.message == "Forsta raden\nAndra raden"

    def test_historical_entry_is_an_orphan(self):
        translation = po_codec.parse_lines(_lines(
            '#. kept comment\n'
            '#~ msgid ""\n'
            '#~ "Removed\\n"\n'
            '#~ "string"\n'
            '#~ msgstr "Borttagen"\n'
        ))

        item = translation["Removed\nstring"]
        assert item.is_orphan
        assert item.message == "Borttagen"
        assert item.extracted_comments == ["kept comment"]

    def test_historical_entry_without_comments(self):
        translation = po_codec.parse_lines(_lines(
            '#: a.py:1\n'
            'msgid "Kept"\n'
            'msgstr "Kvar"\n'
            '\n'
            '#~ msgid "Gone"\n'
            '#~ msgstr "Borta"\n'
        ))

        assert _triples(translation) == {("Kept", "Kept", "Kvar"), ("Gone", "Gone", "Borta")}
        assert translation["Gone"].is_orphan
        assert not translation["Kept"].is_orphan

    def test_context_makes_a_distinct_key(self):
        translation = po_codec.parse_lines(_lines(
            '#: a.py:1\n'
            'msgid "Open"\n'
            'msgstr "Oppna"\n'
            '\n'
            '#. menu\n'
            '#: b.py:2\n'
            'msgctxt "menu"\n'
            'msgid "Open"\n'
            'msgstr "Oppna meny"\n'
        ))

        assert len(translation) == 2
        assert translation["Open"].message == "Oppna"
        contextual = translation["Open" + CONTEXT_SEPARATOR + "menu"]
        assert contextual.msgid == "Open"
        assert contextual.message == "Oppna meny"

    def test_entries_without_blank_separator(self):
        translation = po_codec.parse_lines(_lines(
            '#: a.py:1\n'
            'msgid "One"\n'
            'msgstr "Ett"\n'
            '#: a.py:2\n'
            'msgid "Two"\n'
            'msgstr "Tva"\n'
        ))

        assert _triples(translation) == {("One", "One", "Ett"), ("Two", "Two", "Tva")}
        assert translation["Two"].references == [ReferenceContext("a.py", 2)]

    def test_entry_without_comments_is_parsed(self):
        translation = po_codec.parse_lines(_lines(
            'msgid "Bare"\n'
            'msgstr "Naken"\n'
        ))

        assert translation["Bare"].message == "Naken"
        assert translation["Bare"].is_orphan

    def test_missing_msgstr_leaves_message_absent(self):
        translation = po_codec.parse_lines(_lines(
            '#: a.py:1\n'
            'msgid "Untranslated"\n'
            '\n'
            '#: a.py:2\n'
            'msgid "Next"\n'
            'msgstr "Nasta"\n'
        ))

        assert translation["Untranslated"].message is None
        assert translation["Next"].message == "Nasta"

    def test_windows_line_endings(self):
        translation = po_codec.parse_lines(
            ['#: a.py:1\r\n', 'msgid "Hi"\r\n', 'msgstr "Hej"\r\n', '\r\n'])

        assert translation["Hi"].message == "Hej"


class TestTolerantParsing:

    def test_blank_continuation_line_is_skipped(self, caplog):
        translation = po_codec.parse_lines(_lines(
            '#: a.py:1\n'
            'msgid "Multi"\n'
            '\n'
            '"line"\n'
            'msgstr "Flerrad"\n'
        ))

        assert translation["Multiline"].message == "Flerrad"
        assert "Skipping empty line" in caplog.text

    def test_body_without_msgid_yields_no_item(self):
        translation = po_codec.parse_lines(_lines(
            '#: a.py:1\n'
            'msgstr "No id"\n'
            '\n'
            '#: b.py:2\n'
            'msgid "Valid"\n'
            'msgstr "Giltig"\n'
        ))

        assert _triples(translation) == {("Valid", "Valid", "Giltig")}

    def test_dangling_comments_at_end_of_file(self):
        translation = po_codec.parse_lines(_lines(
            '#: a.py:1\n'
            'msgid "Only"\n'
            'msgstr "Enda"\n'
            '\n'
            '# stray comment\n'
        ))

        assert list(translation.items) == ["Only"]


class TestDuplicateKeys:

    def test_files_defining_the_same_key_are_unioned(self):
        translation = po_codec.parse_lines(_lines(
            '#: a.py:1\n'
            'msgid "K"\n'
            'msgstr "first"\n'
        ), langtag="de")
        po_codec.parse_lines(_lines(
            '#: b.py:2\n'
            'msgid "K"\n'
            'msgstr "second"\n'
        ), translation)

        assert len(translation) == 1
        item = translation["K"]
        assert item.references == [ReferenceContext("a.py", 1), ReferenceContext("b.py", 2)]
        assert item.message == "first"

    def test_union_copies_references_into_comments_and_flags(self):
        translation = po_codec.parse_lines(_lines(
            '#. note\n'
            '#: a.py:1\n'
            'msgid "K"\n'
            'msgstr "v"\n'
            '\n'
            '#: b.py:2\n'
            'msgid "K"\n'
            'msgstr "v"\n'
        ))

        item = translation["K"]
        assert item.extracted_comments == ["note", "b.py:2"]
        assert item.translator_comments == ["b.py:2"]
        assert item.flags == ["b.py:2"]


# ------------------------------------------------------------------
# Writing
# ------------------------------------------------------------------

class TestWriteString:

    def test_single_line(self):
        assert po_codec.write_string("msgid", "Hello", True) == ['msgid "Hello"']

    def test_multi_line(self):
        assert po_codec.write_string("msgid", "a\nb", True) == ['msgid ""', '"a\\n"', '"b"']

    def test_trailing_line_break(self):
        assert po_codec.write_string("msgstr", "a\r\nb\n", True) == ['msgstr ""', '"a\\n"', '"b\\n"', '""']

    def test_historical_prefix_on_every_line(self):
        assert po_codec.write_string("msgid", "a\nb", False) == ['#~ msgid ""', '#~ "a\\n"', '#~ "b"']

    def test_absent_value(self):
        assert po_codec.write_string("msgstr", None, True) == ['msgstr ""']


class TestSerialize:

    def _translation(self, *items):
        translation = Translation(Language("sv"))
        for item in items:
            translation.add_or_update(item)
        return translation

    def test_header_with_template_date(self):
        pot_date = '"POT-Creation-Date: 2020-01-01 10:00+00:00\\n"'

        lines = po_codec.serialize_translation([], pot_date=pot_date, now=FIXED_NOW)

        assert lines[:5] == [
            'msgid ""',
            'msgstr ""',
            '"Project-Id-Version: \\n"',
            pot_date,
            '"PO-Revision-Date: 2024-05-01 13:45+00:00\\n"',
        ]
        assert '"Content-Type: text/plain; charset=utf-8\\n"' in lines
        assert lines[-1] == ""

    def test_header_without_template_date(self):
        lines = po_codec.output_header(now=FIXED_NOW)

        assert lines[3] == '"POT-Creation-Date: 2024-05-01 13:45+00:00\\n"'
        assert not any(line.startswith('"PO-Revision-Date') for line in lines)

    def test_item_layout(self):
        item = TranslationItem(msg_key="Hello", msgid="Hello", message="Hej",
                               translator_comments=["checked"], extracted_comments=["greeting"],
                               flags=["fuzzy"], references=[ReferenceContext("a.py", 3), ReferenceContext("a.py", 3)])

        assert po_codec.serialize_item(item) == [
            "# checked",
            "#. greeting",
            "#: a.py:3",
            "#, fuzzy",
            'msgid "Hello"',
            'msgstr "Hej"',
            "",
        ]

    def test_orphans_last_and_ordered_by_key(self):
        translation = self._translation(
            TranslationItem("b", "b", "B", references=[ReferenceContext("x.py", 1)]),
            TranslationItem("a", "a", "A"),
            TranslationItem("C", "C", "c", references=[ReferenceContext("x.py", 2)]),
            TranslationItem("0", "0", "zero"),
        )

        body = _body(po_codec.serialize_translation(translation.items.values(), now=FIXED_NOW))
        msgid_lines = [line for line in body if "msgid" in line]

        assert msgid_lines == ['msgid "C"', 'msgid "b"', '#~ msgid "0"', '#~ msgid "a"']

    def test_every_orphan_line_is_historical(self):
        item = TranslationItem("Bye", "Bye", "Hej\nda", translator_comments=["note"],
                               extracted_comments=["farewell"], flags=["fuzzy"])

        lines = po_codec.serialize_item(item)

        assert lines == [
            "#~ # note",
            "#~ #. farewell",
            "#~ #, fuzzy",
            '#~ msgid "Bye"',
            '#~ msgstr ""',
            '#~ "Hej\\n"',
            '#~ "da"',
            "",
        ]
        assert all(line.startswith("#~ ") for line in lines[:-1])

    def test_orphan_context_line_is_historical(self):
        item = TranslationItem("Open" + CONTEXT_SEPARATOR + "menu", "Open", "Oppna", extracted_comments=["menu"])

        assert po_codec.serialize_item(item, message_context_enabled=True)[:3] == [
            "#~ #. menu",
            '#~ msgctxt "menu"',
            '#~ msgid "Open"',
        ]

    def test_whitespace_only_translation_is_written_empty(self):
        item = TranslationItem("Hi", "Hi", "   ", references=[ReferenceContext("a.py", 1)])

        assert 'msgstr ""' in po_codec.serialize_item(item)

    def test_message_context_from_first_extracted_comment(self):
        item = TranslationItem("Open" + CONTEXT_SEPARATOR + "menu", "Open", "Oppna",
                               extracted_comments=["menu", "second"], references=[ReferenceContext("a.py", 1)])

        lines = po_codec.serialize_item(item, message_context_enabled=True)

        assert lines[lines.index('msgid "Open"') - 1] == 'msgctxt "menu"'
        assert 'msgctxt "menu"' not in po_codec.serialize_item(item, message_context_enabled=False)

    def test_template_has_empty_translations(self):
        items = {
            "Save": TemplateItem("Save", "Save", comments=["button"], references=[ReferenceContext("a.py", 9)]),
        }

        body = _body(po_codec.serialize_template(items, now=FIXED_NOW))

        assert body == ["#. button", "#: a.py:9", 'msgid "Save"', 'msgstr ""', ""]


# ------------------------------------------------------------------
# Round trips
# ------------------------------------------------------------------

class TestRoundTrip:

    SOURCE = (
        '#: b.py:2\n'
        '#. second comment after reference\n'
        'msgid "Beta"\n'
        'msgstr "Beta sv"\n'
        '\n'
        '#, fuzzy\n'
        '#: a.py:1\n'
        'msgid "Alpha"\n'
        'msgstr ""\n'
        '\n'
        '# note\n'
        '#: c.py:3\n'
        'msgid ""\n'
        '"Gamma\\n"\n'
        '"continued"\n'
        'msgstr "Gamma sv"\n'
    )

    def test_parse_serialize_parse_keeps_triples(self):
        first = po_codec.parse_lines(_lines(self.SOURCE))

        written = po_codec.serialize_translation(first.items.values(), now=FIXED_NOW)
        second = po_codec.parse_lines(written)

        assert _triples(second) == _triples(first)
        assert _triples(first) == {
            ("Beta", "Beta", "Beta sv"),
            ("Alpha", "Alpha", ""),
            ("Gamma\ncontinued", "Gamma\ncontinued", "Gamma sv"),
        }

    def test_escaped_value_round_trips(self):
        value = 'line1\nline2 with "quote"'
        item = TranslationItem(value, value, value, references=[ReferenceContext("a.py", 1)])

        parsed = po_codec.parse_lines(po_codec.serialize_translation([item], now=FIXED_NOW))

        assert parsed[value].msgid == value
        assert parsed[value].message == value

    def test_orphan_round_trips(self):
        items = [
            TranslationItem("Old", "Old", "Gammal", translator_comments=["keep"],
                            extracted_comments=["label"], flags=["fuzzy"]),
            TranslationItem("Older", "Older", "Aldre\nrad", translator_comments=["second"]),
            TranslationItem("Live", "Live", "Levande", references=[ReferenceContext("a.py", 1)]),
        ]

        parsed = po_codec.parse_lines(po_codec.serialize_translation(items, now=FIXED_NOW))

        old = parsed["Old"]
        assert old.is_orphan
        assert old.message == "Gammal"
        assert old.translator_comments == ["keep"]
        assert old.extracted_comments == ["label"]
        assert old.flags == ["fuzzy"]
        assert parsed["Older"].message == "Aldre\nrad"
        assert parsed["Older"].translator_comments == ["second"]
        assert not parsed["Live"].is_orphan
        assert parsed["Live"].translator_comments == []

    def test_orphan_comments_without_blank_separator(self):
        lines = po_codec.serialize_item(TranslationItem("A", "A", "a", translator_comments=["first"]))[:-1]
        lines += po_codec.serialize_item(TranslationItem("B", "B", "b", translator_comments=["second"]))

        parsed = po_codec.parse_lines(lines)

        assert parsed["A"].translator_comments == ["first"]
        assert parsed["B"].translator_comments == ["second"]
        assert parsed["B"].message == "b"

    def test_whitespace_only_msgid_keeps_translation(self):
        item = TranslationItem(" ", " ", "mellanslag", references=[ReferenceContext("a.py", 1)])

        parsed = po_codec.parse_lines(po_codec.serialize_translation([item], now=FIXED_NOW))

        assert len(parsed) == 1
        assert parsed[""].message == "mellanslag"
        assert parsed[""].references == [ReferenceContext("a.py", 1)]

    def test_whitespace_only_msgid_orphan_keeps_translation(self):
        item = TranslationItem(" ", " ", "mellanslag")

        parsed = po_codec.parse_lines(po_codec.serialize_translation([item], now=FIXED_NOW))

        assert parsed[""].message == "mellanslag"
        assert parsed[""].is_orphan

    def test_output_loads_in_polib(self, tmp_path):
        items = [
            TranslationItem("Hello", "Hello", "Hej", references=[ReferenceContext("a.py", 1)]),
            TranslationItem("Two\nlines", "Two\nlines", 'Tva "rader"', references=[ReferenceContext("b.py", 2)]),
            TranslationItem("Gone", "Gone", "Borta"),
        ]
        path = tmp_path / "messages.po"
        path.write_text("\n".join(po_codec.serialize_translation(items, now=FIXED_NOW)) + "\n", encoding="utf-8")

        po = polib.pofile(str(path))

        active = {entry.msgid: entry.msgstr for entry in po if not entry.obsolete}
        assert active == {"Hello": "Hej", "Two\nlines": 'Tva "rader"'}
        assert [entry.msgid for entry in po.obsolete_entries()] == ["Gone"]
        assert po.metadata["Content-Type"] == "text/plain; charset=utf-8"
