"""
Tests for the periodic archive sweep
"""

from datetime import timedelta

from eventbot.utils.dates import utcnow


async def _ended(harness, event_id, hours_ago):
    end = utcnow() - timedelta(hours=hours_ago)
    return await harness.seed_event(
        id=event_id,
        entry_date=end - timedelta(hours=3),
        start_date=end - timedelta(hours=2),
        end_date=end,
    )


class TestArchiveSweep:
    """Events are copied to the archive before they leave the live table"""

    async def test_old_events_are_moved(self, harness):
        old = await _ended(harness, "old", hours_ago=5)
        recent = await _ended(harness, "recent", hours_ago=1)
        upcoming = await harness.seed_event(id="upcoming")

        report = await harness.services.archive.sweep()

        assert report.archived == 1
        assert report.failed == 0
        assert old.id in harness.archive_repo.archived
        assert set(harness.event_repo.events) == {recent.id, upcoming.id}

    async def test_copy_failure_keeps_live_row(self, harness):
        old = await _ended(harness, "old", hours_ago=5)
        harness.archive_repo.fail_create = True

        report = await harness.services.archive.sweep()

        assert report.archived == 0
        assert report.failed == 1
        assert old.id in harness.event_repo.events

    async def test_delete_failure_leaves_duplicate_for_next_run(self, harness):
        old = await _ended(harness, "old", hours_ago=5)
        harness.event_repo.fail_delete = True

        report = await harness.services.archive.sweep()
        assert report.failed == 1
        assert old.id in harness.archive_repo.archived
        assert old.id in harness.event_repo.events

        harness.event_repo.fail_delete = False
        report = await harness.services.archive.sweep()
        assert report.archived == 1
        assert harness.event_repo.events == {}

    async def test_nothing_to_do(self, harness):
        report = await harness.services.archive.sweep()
        assert (report.archived, report.failed) == (0, 0)
