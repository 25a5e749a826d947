"""过期判定与活跃 run 解析单元测试"""

from datetime import UTC, datetime, timedelta

from runtrack.core.models import RunSnapshot
from runtrack.core.staleness import (
    get_display_status,
    get_staleness_info,
    is_run_stale,
    resolve_active_run,
    should_show_activity_indicators,
)

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


def _run(run_id: str, status: str, minutes_ago: int) -> RunSnapshot:
    ts = (NOW - timedelta(minutes=minutes_ago)).isoformat()
    return RunSnapshot(run_id=run_id, campaign_id="c1", status=status, created_at=ts)


class TestIsRunStale:
    def test_only_running_can_be_stale(self):
        assert is_run_stale(_run("r1", "queued", 120), NOW) is False
        assert is_run_stale(_run("r1", "running", 120), NOW) is True

    def test_custom_threshold(self):
        run = _run("r1", "running", 10)
        assert is_run_stale(run, NOW, threshold=timedelta(minutes=5)) is True
        assert is_run_stale(run, NOW, threshold=timedelta(minutes=15)) is False


class TestStalenessInfo:
    def test_running_info(self):
        info = get_staleness_info(_run("r1", "running", 42), NOW)
        assert info.is_stale is True
        assert info.stale_minutes == 42
        assert info.threshold_minutes == 30

    def test_non_running_info(self):
        info = get_staleness_info(_run("r1", "completed", 42), NOW)
        assert info.is_stale is False
        assert info.stale_minutes == 0

    def test_none(self):
        assert get_staleness_info(None, NOW).is_stale is False


class TestResolveActiveRun:
    """活跃 run 解析"""

    def test_empty(self):
        resolution = resolve_active_run([], NOW)
        assert resolution.active_run is None
        assert resolution.resolution_reason == "none"

    def test_queued_beats_older_running(self):
        runs = [_run("old", "running", 10), _run("new", "queued", 1)]
        resolution = resolve_active_run(runs, NOW)
        assert resolution.active_run.run_id == "new"
        assert resolution.resolution_reason == "queued"

    def test_stale_running_is_flagged(self):
        runs = [_run("r1", "completed", 200), _run("r2", "running", 60)]
        resolution = resolve_active_run(runs, NOW)
        assert resolution.active_run.run_id == "r2"
        assert resolution.is_stale is True
        assert resolution.resolution_reason == "stale_running"

    def test_running_beats_newer_terminal(self):
        runs = [_run("r1", "running", 5), _run("r2", "failed", 1)]
        resolution = resolve_active_run(runs, NOW)
        assert resolution.active_run.run_id == "r1"
        assert resolution.resolution_reason == "running"

    def test_latest_terminal(self):
        runs = [_run("r1", "completed", 50), _run("r2", "failed", 5)]
        resolution = resolve_active_run(runs, NOW)
        assert resolution.active_run.run_id == "r2"
        assert resolution.resolution_reason == "terminal"

    def test_unrecognized_falls_back_to_newest(self):
        runs = [_run("r1", "archived", 50), _run("r2", "mystery", 5)]
        resolution = resolve_active_run(runs, NOW)
        assert resolution.active_run.run_id == "r2"
        assert resolution.resolution_reason == "none"


class TestDisplayHelpers:
    def test_display_status(self):
        assert get_display_status(_run("r1", "running", 60), NOW) == "stale"
        assert get_display_status(_run("r1", "Running", 5), NOW) == "running"
        assert get_display_status(None) == "unknown"

    def test_activity_indicators(self):
        assert should_show_activity_indicators(_run("r1", "queued", 1), NOW) is True
        assert should_show_activity_indicators(_run("r1", "running", 5), NOW) is True
        assert should_show_activity_indicators(_run("r1", "running", 60), NOW) is False
        assert should_show_activity_indicators(_run("r1", "completed", 1), NOW) is False
