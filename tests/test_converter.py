import unittest

from gittype_extractor.converter import MAX_BLANK_RUN, collapse_blank_lines, convert
from gittype_extractor.line_mapper import LineMapper
from gittype_extractor.models import Challenge, ChunkType, CodeChunk, CommentRange, ExtractionOptions


def comment_at(data: bytes, text: bytes) -> CommentRange:
    start = data.index(text)
    return CommentRange(LineMapper(data).span(start, start + len(text)))


class CollapseBlankLinesTests(unittest.TestCase):
    def test_blank_lines_are_removed_by_default(self):
        out, mapping = collapse_blank_lines("a\n\n\n\nb\n")
        self.assertEqual(MAX_BLANK_RUN, 0)
        self.assertEqual(out, "a\nb\n")
        self.assertEqual(mapping[0], 0)
        self.assertEqual(mapping[5], 2)  # "b"
        self.assertEqual(mapping[7], len(out))

    def test_runs_shrink_to_max_run(self):
        out, mapping = collapse_blank_lines("a\n\n\n\nb\n", max_run=1)
        self.assertEqual(out, "a\n\nb\n")
        self.assertEqual(mapping[5], 3)

    def test_whitespace_only_lines_count_as_blank(self):
        self.assertEqual(collapse_blank_lines("a\n   \n\t\nb")[0], "a\nb")
        self.assertEqual(collapse_blank_lines("a\n   \n\t\nb", max_run=1)[0], "a\n\nb")

    def test_non_blank_lines_untouched(self):
        text = "    x = 1\n    y = 2   \n\n    return x\n"
        self.assertEqual(collapse_blank_lines(text)[0], "    x = 1\n    y = 2   \n    return x\n")
        self.assertEqual(collapse_blank_lines(text, max_run=1)[0], text)

    def test_edge_runs_are_collapsed_too(self):
        text = "\n\nA\nB\n\n"
        self.assertEqual(collapse_blank_lines(text)[0], "A\nB\n")
        self.assertEqual(collapse_blank_lines(text, max_run=1)[0], "\nA\nB\n\n")

    def test_crlf_terminators_are_kept(self):
        self.assertEqual(collapse_blank_lines("a\r\n\r\n  \r\n\r\nb")[0], "a\r\nb")
        self.assertEqual(collapse_blank_lines("a\r\n\r\n  \r\n\r\nb", max_run=1)[0], "a\r\n\r\nb")

    def test_mapping_is_monotonic(self):
        text = "x\n\n\n  y\n\n\n\nz"
        for max_run in (0, 1, 2):
            out, mapping = collapse_blank_lines(text, max_run)
            self.assertEqual(len(mapping), len(text) + 1)
            self.assertEqual(mapping, sorted(mapping))
            self.assertEqual(out[mapping[text.index("y")]], "y")
            self.assertEqual(out[mapping[text.index("z")]], "z")


class ConvertTests(unittest.TestCase):
    DATA = (
        "# top comment\n"
        "def f():\n"
        '    s = "éè"  # note\n'
        "\n"
        "\n"
        "\n"
        "    # tail\n"
        "    return s\n"
    ).encode("utf-8")

    def _chunk(self) -> CodeChunk:
        start = self.DATA.index(b"def")
        end = len(self.DATA) - 1
        return CodeChunk(LineMapper(self.DATA).span(start, end), ChunkType.FUNCTION, "pkg/mod.py", "python", name="f")

    def _comments(self):
        return [
            comment_at(self.DATA, b"# top comment"),
            comment_at(self.DATA, b"# note"),
            comment_at(self.DATA, b"# tail"),
        ]

    def test_content_is_byte_exact_slice(self):
        chunk = self._chunk()
        ch = convert(chunk, self._comments(), ExtractionOptions(), self.DATA)
        self.assertEqual(ch.content, self.DATA[chunk.span.start:chunk.span.end].decode("utf-8"))
        self.assertEqual((ch.start_byte, ch.end_byte), (chunk.span.start, chunk.span.end))
        self.assertEqual((ch.start_line, ch.end_line), (2, 8))
        self.assertEqual(ch.name, "f")
        self.assertEqual(ch.id, Challenge.make_id("pkg/mod.py", chunk.span.start, chunk.span.end, ChunkType.FUNCTION))

    def test_comment_ranges_are_local_character_offsets(self):
        ch = convert(self._chunk(), self._comments(), ExtractionOptions(), self.DATA)
        self.assertEqual(len(ch.comment_ranges), 2)  # the header comment is outside
        texts = [ch.content[s:e] for s, e in ch.comment_ranges]
        self.assertEqual(texts, ["# note", "# tail"])
        for s, e in ch.comment_ranges:
            self.assertTrue(0 <= s <= e <= len(ch.content))

    def test_collapsing_remaps_comment_ranges(self):
        opts = ExtractionOptions(preserve_empty_lines=False)
        ch = convert(self._chunk(), self._comments(), opts, self.DATA)
        self.assertNotIn("\n\n", ch.content)
        self.assertIn('"éè"  # note\n    # tail', ch.content)
        self.assertEqual([ch.content[s:e] for s, e in ch.comment_ranges], ["# note", "# tail"])
        # Positions in the file are reported from the original span.
        self.assertEqual((ch.start_line, ch.end_line), (2, 8))

    def test_max_blank_run_comes_from_options(self):
        opts = ExtractionOptions(preserve_empty_lines=False, max_blank_run=1)
        ch = convert(self._chunk(), self._comments(), opts, self.DATA)
        self.assertIn('"éè"  # note\n\n    # tail', ch.content)
        self.assertEqual([ch.content[s:e] for s, e in ch.comment_ranges], ["# note", "# tail"])

    def test_display_title_and_dict(self):
        ch = convert(self._chunk(), [], ExtractionOptions(), self.DATA)
        self.assertEqual(ch.display_title(), "pkg/mod.py:2-8")
        d = ch.to_dict()
        self.assertEqual(d["chunk_type"], "function")
        self.assertEqual(d["comment_ranges"], [])
        self.assertEqual(d["file_path"], "pkg/mod.py")


if __name__ == "__main__":
    unittest.main()
