import unittest

from streambridge.backend.errors import RangeNotSatisfiableError
from streambridge.backend.streaming.range import ByteRange, parse_range_header


class TestParseRangeHeader(unittest.TestCase):
    def test_no_header(self) -> None:
        self.assertIsNone(parse_range_header(None, 1000))

    def test_closed_range(self) -> None:
        r = parse_range_header("bytes=0-499", 1000)
        self.assertEqual(r, ByteRange(start=0, end=499))
        self.assertEqual(r.length, 500)
        self.assertEqual(r.content_range(1000), "bytes 0-499/1000")

    def test_open_end_defaults_to_last_byte(self) -> None:
        self.assertEqual(parse_range_header("bytes=200-", 1000), ByteRange(start=200, end=999))

    def test_single_byte_range(self) -> None:
        self.assertEqual(parse_range_header("bytes=999-999", 1000).length, 1)

    def test_end_past_file_is_clamped(self) -> None:
        self.assertEqual(parse_range_header("bytes=900-5000", 1000), ByteRange(start=900, end=999))

    def test_rejected_ranges(self) -> None:
        for header in (
            "bytes=500-100",
            "bytes=1000-",
            "bytes=1000-1200",
            "bytes=abc-def",
            "bytes=-500",
            "bytes=0-1,5-6",
            "items=0-10",
            "",
        ):
            with self.subTest(header=header):
                with self.assertRaises(RangeNotSatisfiableError) as ctx:
                    parse_range_header(header, 1000)
                self.assertEqual(ctx.exception.status_code, 416)
                self.assertEqual(ctx.exception.headers, {"Content-Range": "bytes */1000"})

    def test_empty_file_rejects_any_range(self) -> None:
        with self.assertRaises(RangeNotSatisfiableError):
            parse_range_header("bytes=0-", 0)


if __name__ == "__main__":
    unittest.main()
