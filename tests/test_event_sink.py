from pathlib import Path
import json

import pytest

from openprs.core.config import settings
from openprs.telemetry import FileEventSink, NullEventSink, sink_from_settings


def test_file_event_sink_appends_json_lines(tmp_path: Path):
    sink_path = tmp_path / "nested" / "events.jsonl"
    sink = FileEventSink(sink_path)
    sink.publish({"event_type": "pr_decision", "pr_number": 1})
    sink.publish({"event_type": "sync_completed", "stored": {"eips": 2}})

    payloads = [json.loads(line) for line in sink_path.read_text(encoding="utf-8").splitlines()]
    assert [payload["event_type"] for payload in payloads] == ["pr_decision", "sync_completed"]
    assert payloads[1]["stored"] == {"eips": 2}


def test_sink_from_settings(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(settings, "events_backend", "file")
    monkeypatch.setattr(settings, "events_path", str(tmp_path / "events.jsonl"))
    assert isinstance(sink_from_settings(), FileEventSink)

    monkeypatch.setattr(settings, "events_backend", "off")
    assert isinstance(sink_from_settings(), NullEventSink)

    monkeypatch.setattr(settings, "events_backend", "kafka")
    with pytest.raises(ValueError):
        sink_from_settings()
