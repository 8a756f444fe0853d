import csv
import os
import subprocess
import sys

from conftest import ROWS_PATH, SRC


def _run(*args, cwd=None):
    env = dict(os.environ)
    env["PYTHONPATH"] = str(SRC) + os.pathsep + env.get("PYTHONPATH", "")
    cmd = [sys.executable, "-m", "sf_informal_review", "--fixture", str(ROWS_PATH), *args]
    return subprocess.run(cmd, capture_output=True, text=True, check=False, env=env, cwd=cwd)


def test_cli_builds_packet_and_writes_files(tmp_path):
    out = tmp_path / "pacific"
    # Wide recency window so the run does not depend on today's date.
    proc = _run(
        "--address",
        "1625 Pacific Ave",
        "--months-back",
        "600",
        "--tone",
        "formal",
        "--output",
        str(out),
        cwd=tmp_path,
    )
    assert proc.returncode == 0, proc.stderr
    assert "Filing Packet" in proc.stdout
    assert "# Informal Review - Value Argument" in proc.stdout
    assert "**Property found:** 1625 PACIFIC AV #7" in proc.stderr

    md = (tmp_path / "pacific.md").read_text(encoding="utf-8")
    assert md.rstrip("\n") == proc.stdout.rstrip("\n")
    with (tmp_path / "pacific.csv").open(encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert rows
    assert all(r["id"].startswith("comp-") for r in rows)


def test_cli_ambiguous_address_lists_candidates():
    proc = _run("--address", "990 Green St")
    assert proc.returncode == 1
    assert "990 GREEN ST #1" in proc.stdout
    assert "990 GREEN ST #2" in proc.stdout


def test_cli_reports_appeal_errors():
    proc = _run("--block", "9999", "--lot", "001")
    assert proc.returncode == 1
    assert "Error (not_found)" in proc.stderr


def test_cli_usage_errors_exit_2():
    assert _run().returncode == 2
    assert _run("--block", "0595").returncode == 2
    assert _run("--address", "1625 Pacific", "--radius", "0").returncode == 2
