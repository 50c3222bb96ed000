"""Tests for the webhook pause switch."""

import json

from src.config.pause_gate import FilePauseGate, InMemoryPauseGate, build_pause_gate


def test_in_memory_toggle():
    gate = InMemoryPauseGate()
    assert gate.is_paused() is False
    assert gate.set_paused(True) is True
    assert gate.is_paused() is True
    gate.set_paused(False)
    assert gate.is_paused() is False


def test_file_gate_default_without_file(tmp_path):
    assert FilePauseGate(tmp_path / "pause.json").is_paused() is False
    assert FilePauseGate(tmp_path / "pause.json", default=True).is_paused() is True


def test_file_gate_shared_between_instances(tmp_path):
    path = tmp_path / "state" / "pause.json"
    writer = FilePauseGate(path)
    reader = FilePauseGate(path)

    writer.set_paused(True)

    assert reader.is_paused() is True
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["paused"] is True
    assert "updated_at" in data


def test_unreadable_state_treated_as_paused(tmp_path):
    path = tmp_path / "pause.json"
    path.write_text("{broken", encoding="utf-8")
    assert FilePauseGate(path).is_paused() is True


def test_build_pause_gate(settings, tmp_path):
    assert isinstance(build_pause_gate(settings), InMemoryPauseGate)

    settings.pause_state_file = str(tmp_path / "pause.json")
    settings.webhook_paused = True
    gate = build_pause_gate(settings)
    assert isinstance(gate, FilePauseGate)
    assert gate.is_paused() is True
