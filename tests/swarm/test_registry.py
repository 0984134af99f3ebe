import unittest

from streambridge.backend.swarm.models import SwarmJob
from streambridge.backend.swarm.registry import JobRegistry
from streambridge.shared.job_state import JobState
from tests.fakes import FakeFile

MAGNET = "magnet:?xt=urn:btih:abc"


class TestJobRegistry(unittest.TestCase):
    def test_get_or_create_returns_existing_job(self) -> None:
        registry = JobRegistry()
        job, created = registry.get_or_create(MAGNET)
        again, created_again = registry.get_or_create(MAGNET)

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertIs(job, again)
        self.assertEqual(len(registry), 1)

    def test_existing_job_returned_in_any_state(self) -> None:
        registry = JobRegistry()
        job, _ = registry.get_or_create(MAGNET)
        job.transition(JobState.READY)

        again, created = registry.get_or_create(MAGNET, lambda ident: SwarmJob(identifier="other"))
        self.assertFalse(created)
        self.assertIs(again, job)

    def test_remove_is_idempotent(self) -> None:
        registry = JobRegistry()
        registry.get_or_create(MAGNET)

        self.assertTrue(registry.remove(MAGNET))
        self.assertFalse(registry.remove(MAGNET))
        self.assertFalse(registry.remove(MAGNET))
        self.assertIsNone(registry.find(MAGNET))
        self.assertEqual(len(registry), 0)

    def test_stale_job_cannot_remove_newer_entry(self) -> None:
        registry = JobRegistry()
        stale, _ = registry.get_or_create(MAGNET)
        registry.remove(MAGNET)
        fresh, created = registry.get_or_create(MAGNET)

        self.assertTrue(created)
        self.assertFalse(registry.remove(MAGNET, stale))
        self.assertIs(registry.find(MAGNET), fresh)
        self.assertTrue(registry.remove(MAGNET, fresh))

    def test_find_file_only_searches_ready_jobs_in_order(self) -> None:
        registry = JobRegistry()
        pending, _ = registry.get_or_create("magnet:?xt=urn:btih:one")
        pending.files = (FakeFile("movie.mp4", b"a"),)

        first, _ = registry.get_or_create("magnet:?xt=urn:btih:two")
        first.files = (FakeFile("movie.mp4", b"bb"),)
        first.transition(JobState.READY)

        second, _ = registry.get_or_create("magnet:?xt=urn:btih:three")
        second.files = (FakeFile("movie.mp4", b"ccc"),)
        second.transition(JobState.READY)

        job, f = registry.find_file("movie.mp4")
        self.assertIs(job, first)
        self.assertEqual(f.length, 2)
        self.assertIsNone(registry.find_file("Movie.mp4"))

    def test_clear_returns_all_jobs(self) -> None:
        registry = JobRegistry()
        registry.get_or_create("magnet:?xt=urn:btih:one")
        registry.get_or_create("magnet:?xt=urn:btih:two")

        cleared = registry.clear()
        self.assertEqual([j.identifier for j in cleared], ["magnet:?xt=urn:btih:one", "magnet:?xt=urn:btih:two"])
        self.assertEqual(len(registry), 0)


if __name__ == "__main__":
    unittest.main()
