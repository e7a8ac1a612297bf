"""
Smoke tests for the run_annotate CLI.
"""

import json
import os

import pytest

from job_annotator.config import PREFIX
from run_annotate import main


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    for name in list(os.environ):
        if name.startswith(PREFIX):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def _write_raw(path):
    path.write_text(json.dumps([
        {
            "jobId": "1",
            "title": "Python Developer",
            "company": "Acme",
            "fullDescription": "Python services in Central. HK$20,000 - HK$30,000 per month.",
            "url": "https://hk.jobsdb.com/job/1",
        },
        {
            "jobId": "2",
            "title": "Accountant",
            "company": "Globex",
            "fullDescription": "Ledgers and audits.",
            "postedDate": {"$date": "2026-01-01"},
        },
    ]), encoding="utf-8")


class TestMain:
    def test_input_file_with_state_round_trip(self, tmp_path):
        raw = tmp_path / "raw.json"
        out = tmp_path / "out" / "jobs.json"
        state = tmp_path / "state.json"
        _write_raw(raw)
        argv = ["--input", str(raw), "--out", str(out), "--state", str(state), "--market", "HK"]

        assert main(argv) == 0
        written = {j["source_id"]: j for j in json.loads(out.read_text(encoding="utf-8"))}
        assert set(written) == {"1", "2"}
        assert written["1"]["annotation"]["district"] == "Central"
        assert written["1"]["annotation"]["salary"]["currency"] == "HKD"
        assert written["2"]["posted_date"] is None

        first = {j["source_id"]: j["created_at"] for j in json.loads(state.read_text(encoding="utf-8"))}
        assert set(first) == {"1", "2"}

        assert main(argv + ["--search", "python"]) == 0
        assert [j["source_id"] for j in json.loads(out.read_text(encoding="utf-8"))] == ["1"]
        second = {j["source_id"]: j["created_at"] for j in json.loads(state.read_text(encoding="utf-8"))}
        assert second == first

    def test_unreadable_input(self, tmp_path):
        assert main(["--input", str(tmp_path / "missing.json"), "--out", str(tmp_path / "jobs.json")]) == 1
        assert not (tmp_path / "jobs.json").exists()

    def test_input_must_be_a_list(self, tmp_path):
        raw = tmp_path / "raw.json"
        raw.write_text(json.dumps({"data": []}), encoding="utf-8")
        assert main(["--input", str(raw), "--out", str(tmp_path / "jobs.json")]) == 1
