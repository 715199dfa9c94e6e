"""
Command-line front end tests.
"""

import json

import pytest
from typer.testing import CliRunner

from consult_scribe import cli
from consult_scribe.services.stt_service import TranscriptionService

runner = CliRunner()


@pytest.fixture
def use_provider(monkeypatch):
    def _use(provider):
        monkeypatch.setattr(cli, "_build_service", lambda: TranscriptionService(provider, text_provider=provider))
        return provider

    return _use


def test_transcribe_writes_both_exports(tmp_path, use_provider, provider_factory, enhanced_response):
    provider = use_provider(provider_factory(response=json.dumps(enhanced_response)))
    media = tmp_path / "visit.mp4"
    media.write_bytes(b"\x00" * 64)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        cli.app,
        ["transcribe", str(media), "--patient-id", "P-1001", "--date", "2024-05-01", "--out-dir", str(out_dir)],
    )

    assert result.exit_code == 0, result.output
    assert "Mental Status Exam Observations" in result.output
    assert "[00:00:01] Doctor: Good morning, what brings you in today?" in result.output
    assert (out_dir / "2024-05-01_P-1001_transcript.json").exists()
    assert (out_dir / "2024-05-01_P-1001_transcript.txt").read_text(encoding="utf-8").startswith("Date: 2024-05-01")
    assert provider.calls[0]["media"].mime_type == "video/mp4"
    assert "mentalStatusExam" in provider.calls[0]["schema"]["required"]


def test_transcribe_without_mse(tmp_path, use_provider, provider_factory):
    provider = use_provider(provider_factory())
    media = tmp_path / "visit.m4a"
    media.write_bytes(b"\x00")

    result = runner.invoke(
        cli.app, ["transcribe", str(media), "--no-mse", "--format", "txt", "--out-dir", str(tmp_path / "out")]
    )

    assert result.exit_code == 0, result.output
    assert "mentalStatusExam" not in provider.calls[0]["schema"]["properties"]
    assert [p.suffix for p in (tmp_path / "out").iterdir()] == [".txt"]


def test_transcribe_reports_provider_failure(tmp_path, use_provider, provider_factory):
    use_provider(provider_factory(error=RuntimeError("model overloaded")))
    media = tmp_path / "visit.m4a"
    media.write_bytes(b"\x00")

    result = runner.invoke(cli.app, ["transcribe", str(media), "--out-dir", str(tmp_path / "out")])

    assert result.exit_code == 1
    assert "Fake API Error: model overloaded" in result.output
    assert not (tmp_path / "out").exists()


def test_transcribe_rejects_non_media_file(tmp_path, use_provider, provider_factory):
    provider = use_provider(provider_factory())
    notes = tmp_path / "notes.txt"
    notes.write_text("hello")

    result = runner.invoke(cli.app, ["transcribe", str(notes)])

    assert result.exit_code == 1
    assert provider.calls == []


def test_transcribe_text_from_file(tmp_path, use_provider, provider_factory):
    provider = use_provider(provider_factory())
    source = tmp_path / "meet.txt"
    source.write_text("Hello, what brings you in?\nHeadaches.", encoding="utf-8")

    result = runner.invoke(
        cli.app, ["transcribe-text", str(source), "--format", "json", "--out-dir", str(tmp_path / "out")]
    )

    assert result.exit_code == 0, result.output
    assert provider.calls[0]["media"] is None
    assert "Headaches." in provider.calls[0]["prompt"]
    assert (tmp_path / "out" / "2024-05-01_P-1001_transcript.json").exists()


def test_transcribe_text_from_stdin(tmp_path, use_provider, provider_factory):
    provider = use_provider(provider_factory())

    result = runner.invoke(
        cli.app, ["transcribe-text", "-", "--out-dir", str(tmp_path)], input="Doctor says hi\n"
    )

    assert result.exit_code == 0, result.output
    assert "Doctor says hi" in provider.calls[0]["prompt"]


def test_export_existing_transcript(tmp_path, basic_response):
    source = tmp_path / "saved.json"
    source.write_text(json.dumps(basic_response), encoding="utf-8")

    result = runner.invoke(cli.app, ["export", str(source)])

    assert result.exit_code == 0, result.output
    text = (tmp_path / "2024-05-01_P-1001_transcript.txt").read_text(encoding="utf-8")
    assert "Patient: I've had headaches for about two weeks." in text


def test_export_rejects_invalid_json(tmp_path):
    source = tmp_path / "saved.json"
    source.write_text(json.dumps({"transcript": []}), encoding="utf-8")

    result = runner.invoke(cli.app, ["export", str(source)])

    assert result.exit_code == 1


def test_export_leaves_canonically_named_source_untouched(tmp_path, basic_response):
    source = tmp_path / "2024-05-01_P-1001_transcript.json"
    original = json.dumps(basic_response)
    source.write_text(original, encoding="utf-8")

    result = runner.invoke(cli.app, ["export", str(source), "--format", "both"])

    assert result.exit_code == 0, result.output
    assert source.read_text(encoding="utf-8") == original
    assert (tmp_path / "2024-05-01_P-1001_transcript.txt").exists()
