"""Tests for reading and writing entries in the Markdown bookmark list."""

import unittest

from osmosync.core.markdown import format_entry, parse_all_entries, prepend_entries
from osmosync.domain.models import Entry

DOCUMENT = """# My reading list

Some intro text with a [inline link](https://inline.example) that is not an entry.

- [Python](https://python.org) #lang
- [Rust Book](https://doc.rust-lang.org/book/)
  * [Nested](https://nested.example)
+ [Plus](https://plus.example)
"""


class TestParseAllEntries(unittest.TestCase):
    def test_parses_list_items_in_document_order(self):
        entries = parse_all_entries(DOCUMENT)
        assert [e.href for e in entries] == [
            "https://python.org",
            "https://doc.rust-lang.org/book/",
            "https://nested.example",
            "https://plus.example",
        ]
        assert entries[0] == Entry(title="Python", href="https://python.org")

    def test_ignores_inline_links_and_prose(self):
        entries = parse_all_entries("See [this](https://a.example) for details.\n")
        assert entries == []

    def test_empty_and_none(self):
        assert parse_all_entries("") == []
        assert parse_all_entries(None) == []

    def test_escaped_brackets_are_unescaped(self):
        entries = parse_all_entries(r"- [Array \[0\] docs](https://arr.example)")
        assert entries == [Entry(title="Array [0] docs", href="https://arr.example")]

    def test_title_whitespace_is_kept(self):
        entries = parse_all_entries("-   [  Spaced  out ](https://s.example)")
        assert entries[0].title == "  Spaced  out "

    def test_href_with_balanced_parentheses(self):
        text = "- [Python](https://en.wikipedia.org/wiki/Python_(programming_language)) #lang\n"
        assert parse_all_entries(text) == [
            Entry("Python", "https://en.wikipedia.org/wiki/Python_(programming_language)")
        ]

    def test_angle_bracket_destination(self):
        text = r"- [Odd](<https://x.example/a b(c \<d\>>)"
        assert parse_all_entries(text) == [Entry("Odd", "https://x.example/a b(c <d>")]

    def test_title_does_not_span_lines(self):
        text = "- [broken\n- [Ok](https://ok.example)"
        assert parse_all_entries(text) == [Entry(title="Ok", href="https://ok.example")]

    def test_duplicate_hrefs_are_all_returned(self):
        text = "- [A](https://x.example)\n- [B](https://x.example)\n"
        assert [e.title for e in parse_all_entries(text)] == ["A", "B"]


class TestFormatEntry(unittest.TestCase):
    def test_plain(self):
        assert format_entry(Entry("Python", "https://python.org")) == (
            "- [Python](https://python.org)"
        )

    def test_escapes_brackets_and_replaces_line_breaks(self):
        line = format_entry(Entry("a [b]\n  c", "https://x.example"))
        assert line == r"- [a \[b\]   c](https://x.example)"

    def test_balanced_parentheses_stay_plain(self):
        entry = Entry("Python", "https://en.wikipedia.org/wiki/Python_(programming_language)")
        assert format_entry(entry) == (
            "- [Python](https://en.wikipedia.org/wiki/Python_(programming_language))"
        )

    def test_awkward_hrefs_use_angle_brackets(self):
        assert format_entry(Entry("A", "https://x.example/a(b")) == "- [A](<https://x.example/a(b>)"
        assert format_entry(Entry("B", "https://x.example/a b")) == (
            "- [B](<https://x.example/a b>)"
        )

    def test_formatted_entries_parse_back_exactly(self):
        entries = [
            Entry(r"odd [title] with \ slash", "https://odd.example"),
            Entry("Foo  Bar ", "https://spaces.example"),
            Entry(" lead", "https://en.wikipedia.org/wiki/Python_(programming_language)"),
            Entry("Unbalanced", "https://x.example/a)b(c"),
            Entry("Nested", "https://x.example/f((x))"),
            Entry("Space", "https://x.example/a b"),
            Entry("Angles", "https://x.example/<tag>\\path"),
        ]
        for entry in entries:
            with self.subTest(entry=entry):
                assert parse_all_entries(format_entry(entry)) == [entry]


class TestPrependEntries(unittest.TestCase):
    def test_inserts_above_first_entry(self):
        result = prepend_entries(DOCUMENT, [Entry("New", "https://new.example")])
        lines = result.splitlines()
        assert lines[0] == "# My reading list"
        new_index = lines.index("- [New](https://new.example)")
        assert lines[new_index + 1] == "- [Python](https://python.org) #lang"
        assert parse_all_entries(result)[0].href == "https://new.example"

    def test_keeps_entries_in_given_order(self):
        result = prepend_entries(
            "- [Old](https://old.example)\n",
            [Entry("One", "https://1.example"), Entry("Two", "https://2.example")],
        )
        assert [e.href for e in parse_all_entries(result)] == [
            "https://1.example",
            "https://2.example",
            "https://old.example",
        ]

    def test_empty_document_becomes_the_block(self):
        assert prepend_entries(None, [Entry("A", "https://a.example")]) == (
            "- [A](https://a.example)\n"
        )
        assert prepend_entries("", [Entry("A", "https://a.example")]) == (
            "- [A](https://a.example)\n"
        )

    def test_document_without_entries_gets_them_appended(self):
        result = prepend_entries("# Title", [Entry("A", "https://a.example")])
        assert result == "# Title\n- [A](https://a.example)\n"

    def test_skips_hrefs_already_present(self):
        text = "- [Python](https://python.org)\n"
        result = prepend_entries(
            text,
            [Entry("Py", "https://python.org"), Entry("New", "https://new.example")],
        )
        assert result == "- [New](https://new.example)\n- [Python](https://python.org)\n"

    def test_nothing_to_add_returns_text_unchanged(self):
        text = "- [Python](https://python.org)\n"
        assert prepend_entries(text, [Entry("Python", "https://python.org")]) == text
        assert prepend_entries(text, []) == text

    def test_duplicates_within_input_written_once(self):
        result = prepend_entries(
            "",
            [Entry("A", "https://dup.example"), Entry("B", "https://dup.example")],
        )
        assert result == "- [A](https://dup.example)\n"


if __name__ == "__main__":
    unittest.main()
