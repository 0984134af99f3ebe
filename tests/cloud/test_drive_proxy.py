import asyncio
import unittest

import httpx

from streambridge.backend.cloud.drive_proxy import DriveProxy, build_direct_url
from streambridge.backend.errors import BackendFailureError


async def _collect(response) -> bytes:
    body = b""
    async for chunk in response.body_iterator:
        body += chunk
    return body


class TestBuildDirectUrl(unittest.TestCase):
    def test_direct_download_url(self) -> None:
        self.assertEqual(build_direct_url("XYZ"), "https://drive.google.com/uc?id=XYZ&export=download")


class TestDriveProxy(unittest.TestCase):
    def test_relays_body_inline(self) -> None:
        async def run_test():
            seen = []

            def handler(request: httpx.Request) -> httpx.Response:
                seen.append(str(request.url))
                return httpx.Response(200, headers={"Content-Type": "video/webm"}, content=b"abc" * 100)

            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                response = await DriveProxy(client=client).open("XYZ")
                body = await _collect(response)

            self.assertEqual(seen, ["https://drive.google.com/uc?id=XYZ&export=download"])
            self.assertEqual(body, b"abc" * 100)
            self.assertEqual(response.headers["content-disposition"], "inline")
            self.assertEqual(response.media_type, "video/webm")

        asyncio.run(run_test())

    def test_missing_content_type_defaults_to_octet_stream(self) -> None:
        async def run_test():
            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(200, content=b"x")

            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                response = await DriveProxy(client=client).open("XYZ")
                await _collect(response)

            self.assertEqual(response.media_type, "application/octet-stream")

        asyncio.run(run_test())

    def test_remote_error_status_raises(self) -> None:
        async def run_test():
            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(404, content=b"gone")

            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                with self.assertRaises(BackendFailureError) as ctx:
                    await DriveProxy(client=client).open("XYZ")

            self.assertEqual(ctx.exception.status_code, 500)
            self.assertEqual(ctx.exception.message, "Failed to stream the file.")

        asyncio.run(run_test())

    def test_transport_error_raises(self) -> None:
        async def run_test():
            def handler(request: httpx.Request) -> httpx.Response:
                raise httpx.ConnectTimeout("timed out", request=request)

            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                with self.assertRaises(BackendFailureError):
                    await DriveProxy(client=client).open("XYZ")

        asyncio.run(run_test())


if __name__ == "__main__":
    unittest.main()
