# tests/unit/test_metrics.py
import json

from smart_lunch.services.metrics import MetricsLogger


def test_timed_block_writes_latency_row(settings, tmp_path):
    metrics = MetricsLogger(settings)
    with metrics.timed("recipe_chat", modifying=False) as extra:
        extra["recipe_found"] = True
    rows = [json.loads(line) for line in (tmp_path / "data" / "latency_log.jsonl").read_text().splitlines()]
    assert rows[-1]["name"] == "recipe_chat"
    assert rows[-1]["origin"] == "backend"
    assert rows[-1]["extra"] == {"modifying": False, "recipe_found": True}
    assert rows[-1]["duration_ms"] >= 0


def test_unwritable_metrics_never_raise(settings, tmp_path):
    blocker = tmp_path / "data"
    blocker.write_text("not a directory")
    MetricsLogger(settings).log_latency("x", 1.0, origin="backend")
