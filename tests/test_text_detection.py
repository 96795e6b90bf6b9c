import unittest
from pathlib import Path

from gittype_extractor.text_detection import BinaryDetector, looks_binary
from tests.fixtures import TempRepo


class LooksBinaryTests(unittest.TestCase):
    def test_nul_bytes_are_binary(self):
        self.assertTrue(looks_binary(b"\x00\xff\x00 bytes"))

    def test_utf8_text_is_not_binary(self):
        self.assertFalse(looks_binary("名前 = 'こんにちは'\n".encode("utf-8")))
        self.assertFalse(looks_binary(b""))

    def test_truncated_multibyte_tail_is_text(self):
        data = "abc é".encode("utf-8")
        self.assertFalse(looks_binary(data[:-1]))

    def test_mostly_non_printable_is_binary(self):
        self.assertTrue(looks_binary(bytes(range(0x80, 0x90)) * 4))


class BinaryDetectorTests(unittest.TestCase):
    def test_heuristic_binary_detection(self):
        with TempRepo({"text.py": b"hello = 'world'\n", "binary.py": b"\x00\xff\x00 bytes"}) as tmp:
            detector = BinaryDetector(base_dir=tmp)
            self.assertFalse(detector.is_binary("text.py"))
            self.assertTrue(detector.is_binary("binary.py"))
            # Already-loaded content is used instead of reading the file.
            self.assertTrue(detector.is_binary("text.py", b"\x00\x00"))

    def test_git_attribute_overrides(self):
        calls = []

        def fake_git(args):
            calls.append(tuple(args))
            return f"{args[-1]}: binary: set"

        detector = BinaryDetector(git_runner=fake_git, base_dir=Path.cwd())
        self.assertTrue(detector.is_binary("anything.py", b"print('hi')\n"))
        self.assertEqual(calls, [("check-attr", "binary", "--", "anything.py")])

        def fake_git_unset(args):
            return f"{args[-1]}: binary: unset"

        self.assertFalse(BinaryDetector(git_runner=fake_git_unset).is_binary("x.py", b"\x00"))

    def test_unspecified_attribute_falls_back_to_heuristics(self):
        def fake_git(args):
            return f"{args[-1]}: binary: unspecified"

        detector = BinaryDetector(git_runner=fake_git, base_dir=Path.cwd())
        self.assertTrue(detector.is_binary("blob.py", b"\x00\x01"))
        # File is missing and no content given: treated as text.
        self.assertFalse(detector.is_binary("missing-file-for-detector.py"))

    def test_git_failures_fall_back_to_heuristics(self):
        def failing_git(args):
            raise RuntimeError("git check-attr failed")

        detector = BinaryDetector(git_runner=failing_git)
        self.assertFalse(detector.is_binary("a.py", b"x = 1\n"))


if __name__ == "__main__":
    unittest.main()
