import unittest

from streambridge.backend.swarm.resolver import resolve_media_file
from tests.fakes import FakeFile


class TestResolveMediaFile(unittest.TestCase):
    def test_first_matching_file_wins(self) -> None:
        files = [
            FakeFile("readme.txt", b"r"),
            FakeFile("episode1.mp4", b"1"),
            FakeFile("episode2.mp4", b"2"),
        ]
        self.assertEqual(resolve_media_file(files).name, "episode1.mp4")

    def test_suffix_is_case_sensitive(self) -> None:
        files = [FakeFile("MOVIE.MP4", b"m"), FakeFile("movie.mkv", b"k")]
        self.assertIsNone(resolve_media_file(files))

    def test_suffix_must_be_at_the_end(self) -> None:
        self.assertIsNone(resolve_media_file([FakeFile("movie.mp4.part", b"p")]))

    def test_empty_listing(self) -> None:
        self.assertIsNone(resolve_media_file([]))

    def test_custom_suffix(self) -> None:
        files = [FakeFile("a.mp4", b"a"), FakeFile("b.webm", b"b")]
        self.assertEqual(resolve_media_file(files, ".webm").name, "b.webm")


if __name__ == "__main__":
    unittest.main()
