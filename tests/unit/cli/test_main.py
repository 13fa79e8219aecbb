"""Unit tests for CLI command handling."""

from __future__ import annotations

import json
import tarfile

from cli.main import main


def test_cli_create_prints_bundle_id(tmp_path, capsys) -> None:
    """CLI create should print the new bundle id as JSON."""
    source = tmp_path / "a.txt"
    source.write_bytes(b"hello")

    exit_code = main(["--data-root", str(tmp_path / "data"), "create", str(source)])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert len(payload["bundle_id"]) == 24


def test_cli_list_prints_summaries(tmp_path, capsys) -> None:
    """CLI list should print one summary per bundle."""
    source = tmp_path / "docs"
    source.mkdir()
    (source / "a.txt").write_bytes(b"hello")
    (source / "b.txt").write_bytes(b"hi")
    data_root = str(tmp_path / "data")
    main(["--data-root", data_root, "create", str(source)])
    capsys.readouterr()

    exit_code = main(["--data-root", data_root, "list"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert [(item["num_files"], item["total_size"]) for item in payload] == [(2, 7)]


def test_cli_download_saves_archive(tmp_path, capsys) -> None:
    """CLI download should write <id>.tar.gz under the output directory."""
    source = tmp_path / "a.txt"
    source.write_bytes(b"hello")
    data_root = str(tmp_path / "data")
    main(["--data-root", data_root, "create", str(source)])
    bundle_id = json.loads(capsys.readouterr().out)["bundle_id"]
    out_dir = tmp_path / "out"

    exit_code = main(["--data-root", data_root, "download", bundle_id, "--out", str(out_dir)])

    with tarfile.open(out_dir / f"{bundle_id}.tar.gz", mode="r:gz") as archive:
        names = archive.getnames()

    assert exit_code == 0
    assert names == ["a.txt"]


def test_cli_download_unknown_bundle_fails(tmp_path, capsys) -> None:
    """CLI download of an unknown id should exit non-zero with an error line."""
    exit_code = main(["--data-root", str(tmp_path / "data"), "download", "nope"])
    error_output = capsys.readouterr().err

    assert exit_code == 1
    assert "Bundle not found" in error_output


def test_cli_create_missing_path_fails(tmp_path, capsys) -> None:
    """CLI create should report missing inputs."""
    exit_code = main(["--data-root", str(tmp_path / "data"), "create", str(tmp_path / "absent")])

    assert exit_code == 1
    assert "Path not found" in capsys.readouterr().err
