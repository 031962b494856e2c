"""Tests for regrouping token deltas into chunks."""

from ledger_recon_ai.llm.chunker import LineChunker


def _run(deltas):
    chunker = LineChunker()
    chunks = []
    for delta in deltas:
        chunks.extend(chunker.feed(delta))
    chunks.extend(chunker.flush())
    return chunks


class TestLineChunker:
    def test_lines_split_across_deltas(self):
        assert _run(["Star", "ting analy", "sis...\nFound 10 ", "transactions.\n"]) == [
            "Starting analysis...",
            "Found 10 transactions.",
        ]

    def test_trailing_text_is_flushed(self):
        assert _run(["Reading", " ledger"]) == ["Reading ledger"]

    def test_blank_lines_and_fences_are_dropped(self):
        assert _run(["Done.\n\n```json\n", '{"a": 1}\n', "```\n"]) == ["Done.", '{"a": 1}']

    def test_multiline_object_kept_together(self):
        chunks = _run(["Almost there\n{\n", '  "summary": "ok",\n', '  "matches": []\n', "}\n"])

        assert chunks == ["Almost there", '{\n  "summary": "ok",\n  "matches": []\n}']

    def test_braces_inside_strings_are_ignored(self):
        chunks = _run(['{"summary": "uses } and { freely",\n', '"matches": []}\n', "after\n"])

        assert chunks == ['{"summary": "uses } and { freely",\n"matches": []}', "after"]

    def test_unbalanced_block_is_flushed_at_end(self):
        assert _run(["{ unfinished\n", "more text"]) == ["{ unfinished\nmore text"]

    def test_carriage_returns_are_stripped(self):
        assert _run(["one\r\ntwo\r\n"]) == ["one", "two"]
