from netstats.core.models import ErrorCode, Stats
from netstats.core.uptime import UptimeTracker


class TestUptimeTracker:
    def test_uptime_percent(self):
        tracker = UptimeTracker()
        for i in range(10):
            tracker.record_attempt()
            if i < 2:
                tracker.record_failure(ErrorCode.LIVENESS_UNREACHABLE, "down")

        assert tracker.uptime.inc == 10
        assert tracker.uptime.down == 2
        assert tracker.uptime_percent() == 80.0

    def test_no_attempts_reports_zero(self):
        assert UptimeTracker().uptime_percent() == 0.0

    def test_attempt_clears_errors(self):
        tracker = UptimeTracker()
        tracker.record_attempt()
        tracker.record_error(ErrorCode.BLOCK_FETCH_FAILED, "block 7")
        assert len(tracker.errors) == 1

        tracker.record_attempt()
        assert tracker.errors == []

    def test_failure_degrades_status(self):
        stats = Stats(active=True, listening=True, mining=True, peers=12)
        tracker = UptimeTracker()
        tracker.record_attempt()
        tracker.record_failure(ErrorCode.LIVENESS_UNREACHABLE, "refused", stats)

        assert (stats.active, stats.listening, stats.mining, stats.peers) == (False, False, False, 0)
        assert [e.to_dict() for e in tracker.errors] == [{"code": "1", "msg": "refused"}]

    def test_plain_error_is_not_downtime(self):
        tracker = UptimeTracker()
        tracker.record_attempt()
        tracker.record_error(ErrorCode.HEAD_NUMBER_PARSE_FAILED, "bad hex")
        assert tracker.uptime.down == 0
        assert tracker.uptime_percent() == 100.0

    def test_refresh_returns_detached_copy(self):
        tracker = UptimeTracker()
        tracker.record_attempt()
        snapshot = tracker.refresh()
        tracker.record_attempt()

        assert snapshot.inc == 1
        assert snapshot.total == 100.0
        assert tracker.uptime.inc == 2
