"""Tests for telemetry and metrics tracking."""
import sqlite3
import time

from ledgerbot.telemetry import MetricEvent, MetricType, TelemetryCollector


def test_metric_event_creation():
    """Test MetricEvent dataclass creation."""
    event = MetricEvent(
        timestamp=time.time(),
        metric_type=MetricType.COMMAND_USAGE,
        name="echo",
        value=1.0,
        tags={"user_id": "1"},
    )
    assert event.metric_type == MetricType.COMMAND_USAGE
    assert event.metadata == {}


def test_collector_creates_database(tmp_path):
    """Test TelemetryCollector initialization."""
    db_path = tmp_path / "telemetry.db"
    collector = TelemetryCollector(db_path)
    assert collector.db_path == db_path
    assert db_path.exists()
    assert len(collector._metrics_buffer) == 0


def test_track_command(telemetry):
    """Test command tracking."""
    telemetry.track_command(
        command_name="insert",
        user_id="1",
        guild_id="42",
        success=True,
        duration_ms=12.5,
        channel_id="77",
    )

    event = telemetry._metrics_buffer[0]
    assert event.metric_type == MetricType.COMMAND_USAGE
    assert event.tags == {"user_id": "1", "guild_id": "42", "success": "True", "channel_id": "77"}
    assert event.metadata["duration_ms"] == 12.5


def test_command_stats_after_flush(telemetry):
    """Test aggregated command statistics."""
    telemetry.track_command("echo", "1", "42", success=True)
    telemetry.track_command("echo", "2", "42", success=False)
    telemetry.track_command("log", "1", "dm", success=True)
    telemetry.flush()

    assert telemetry._metrics_buffer == []
    stats = telemetry.get_command_stats()
    assert stats["echo"]["usage_count"] == 2
    assert stats["echo"]["success_rate"] == 0.5
    assert stats["echo"]["unique_users"] == 2
    assert stats["log"]["usage_count"] == 1
    assert telemetry.get_command_stats(hours=1)["echo"]["usage_count"] == 2


def test_error_and_persistence_tracking(telemetry):
    """Test error summary and persistence events."""
    telemetry.track_error("PersistenceError", command="insert", user_id="1", error_details="down")
    telemetry.track_error("PersistenceError", command="log")
    telemetry.track_error("UnknownCommand", command="frobnicate")
    telemetry.track_persistence("insert", False)
    telemetry.track_system_event("startup", source="setup_hook")
    telemetry.flush()

    assert telemetry.get_error_summary() == {"PersistenceError": 2, "UnknownCommand": 1}
    with sqlite3.connect(telemetry.db_path) as conn:
        rows = conn.execute("SELECT metric_type, name, value FROM metrics WHERE metric_type != 'error_rate'").fetchall()
    assert ("persistence", "insert", 0.0) in rows
    assert ("system_event", "startup", 1.0) in rows


def test_auto_flush_on_interval(tmp_path):
    """Test buffered metrics flush once the interval passes."""
    collector = TelemetryCollector(tmp_path / "t.db", flush_interval=0)
    time.sleep(0.01)
    collector.track_command("echo", "1", "42")
    assert collector._metrics_buffer == []
    assert collector.get_command_stats()["echo"]["usage_count"] == 1


def test_cleanup_old_data(telemetry):
    """Test removal of old metric rows."""
    telemetry.track_command("echo", "1", "42")
    telemetry.flush()
    with sqlite3.connect(telemetry.db_path) as conn:
        conn.execute("UPDATE metrics SET timestamp = ?", (time.time() - 40 * 86400,))
        conn.commit()

    assert telemetry.cleanup_old_data(days_to_keep=30) == 1
    assert telemetry.get_command_stats() == {}
