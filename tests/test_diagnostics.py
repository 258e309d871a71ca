import json

from src.reel_downloader.services.diagnostics import DirectoryDiagnosticsSink


def test_sink_creates_directory_and_writes_text(tmp_path):
    sink = DirectoryDiagnosticsSink(tmp_path / "debug")

    path = sink.write("raw-response-ABC123xyz", "<html></html>")

    assert path.parent == tmp_path / "debug"
    assert path.name.endswith("-raw-response-ABC123xyz.json")
    assert ":" not in path.name
    assert path.read_text(encoding="utf-8") == "<html></html>"


def test_sink_serializes_structures(tmp_path):
    sink = DirectoryDiagnosticsSink(tmp_path)

    path = sink.write("extracted-json-abc-shared-data", {"caption": "café", "path": tmp_path})

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {"caption": "café", "path": str(tmp_path)}


def test_sink_sanitizes_labels(tmp_path):
    sink = DirectoryDiagnosticsSink(tmp_path)

    path = sink.write("weird/label with spaces", "x")

    assert path.parent == tmp_path
    assert path.name.endswith("-weird-label-with-spaces.json")


def test_sink_failure_is_not_raised(tmp_path):
    sink = DirectoryDiagnosticsSink(tmp_path / "debug")
    (tmp_path / "debug").rmdir()
    (tmp_path / "debug").write_text("now a file", encoding="utf-8")

    assert sink.write("raw-response-abc", "content") is None
