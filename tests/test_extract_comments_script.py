import asyncio
import csv
import importlib.util
import json
from pathlib import Path

import pytest


SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "extract_comments.py"

PAYLOAD = [
    {"kind": "Listing", "data": {"children": [{"kind": "t3", "data": {"id": "p"}}]}},
    {
        "kind": "Listing",
        "data": {
            "children": [
                {"kind": "t1", "data": {"id": "a", "author": "u1", "body": "hi", "score": 5, "created_utc": 100}},
                {"kind": "t1", "data": {"id": "c", "author": "u3", "body": "yo", "score": 2, "created_utc": 50}},
            ]
        },
    },
]


@pytest.fixture(scope="module")
def script():
    spec = importlib.util.spec_from_file_location("extract_comments", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_output_suffix_sets_export_format(script, tmp_path):
    args = script.parse_args(["--input-file", "t.json", "--output", str(tmp_path / "t.csv")])
    assert args.export_path == tmp_path / "t.csv"


def test_conflicting_output_and_format_is_rejected(script, tmp_path):
    with pytest.raises(SystemExit) as exc:
        script.parse_args(["--input-file", "t.json", "--output", str(tmp_path / "t.csv"), "--format", "xlsx"])
    assert exc.value.code == 2


def test_unsupported_output_suffix_is_rejected(script, tmp_path):
    with pytest.raises(SystemExit) as exc:
        script.parse_args(["--input-file", "t.json", "--output", str(tmp_path / "t.txt")])
    assert exc.value.code == 2


def test_missing_input_file_exits_with_message(script, tmp_path):
    missing = tmp_path / "nope.json"
    with pytest.raises(SystemExit) as exc:
        asyncio.run(script.main(["--input-file", str(missing), "--quiet"]))
    assert "failed to load comments" in str(exc.value.code)


def test_input_file_sorted_and_exported(script, tmp_path):
    thread = tmp_path / "thread.json"
    thread.write_text(json.dumps(PAYLOAD), encoding="utf-8")
    out = tmp_path / "exports" / "thread.csv"

    asyncio.run(
        script.main(
            ["--input-file", str(thread), "--sort-by", "time", "--order", "asc", "--output", str(out), "--quiet"]
        )
    )

    with out.open("r", encoding="utf-8-sig", newline="") as f:
        records = list(csv.DictReader(f))
    assert [r["comment id"] for r in records] == ["c", "a"]
