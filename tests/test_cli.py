# type: ignore  # noqa: PGH003
# ruff: noqa: S101, D103, D100, INP001, ANN001

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from checks_api.cli import build_argparser, details_from_args, main
from checks_api.errors import MissingValueError
from checks_api.models import AnnotationLevel, ChecksConclusion, ChecksStatus
from checks_api.publisher import ChecksPublisher

ENV_VARS = [
    "CHECKS_NAME",
    "CHECKS_STATUS",
    "CHECKS_CONCLUSION",
    "CHECKS_DETAILS_URL",
    "CHECKS_STARTED_AT",
    "CHECKS_COMPLETED_AT",
    "CHECKS_TITLE",
    "CHECKS_SUMMARY",
    "CHECKS_TEXT",
    "CHECKS_ANNOTATIONS_JSON",
    "CHECKS_LOG_LEVEL",
]


class RecordingPublisher(ChecksPublisher):
    def __init__(self) -> None:
        self.published = []

    def publish(self, details) -> None:
        self.published.append(details)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for env_var in ENV_VARS:
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def annotations_json(tmp_path: Path) -> Path:
    json_fp = tmp_path / "annotations.json"
    json_fp.write_text(
        json.dumps(
            [
                {
                    "path": "src/app.py",
                    "start_line": 12,
                    "end_line": 12,
                    "start_column": 5,
                    "end_column": 9,
                    "annotation_level": "failure",
                    "message": "undefined name `foo`",
                    "title": "F821",
                },
            ],
        ),
        encoding="utf-8",
    )
    return json_fp


def test_details_from_flags(annotations_json: Path) -> None:
    args = build_argparser().parse_args(
        [
            "--name",
            "Lint",
            "--status",
            "completed",
            "--conclusion",
            "failure",
            "--details-url",
            "https://ci.example.com/job/42/",
            "--started-at",
            "2024-05-01T12:00:00+00:00",
            "--completed-at",
            "2024-05-01T12:05:00+00:00",
            "--title",
            "Ruff found 1 issue",
            "--summary",
            "See annotations",
            "--annotations-json",
            str(annotations_json),
            "--action",
            "Fix",
            "Apply safe fixes",
            "fix",
        ],
    )

    details = details_from_args(args)

    assert details.name == "Lint"
    assert details.status == ChecksStatus.COMPLETED
    assert details.conclusion == ChecksConclusion.FAILURE
    assert details.details_url == "https://ci.example.com/job/42/"
    assert details.started_at == datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    assert details.completed_at == datetime(2024, 5, 1, 12, 5, tzinfo=UTC)
    assert details.output.title == "Ruff found 1 issue"
    assert len(details.output.annotations) == 1
    assert details.output.annotations[0].annotation_level == AnnotationLevel.FAILURE
    assert [a.identifier for a in details.actions] == ["fix"]


def test_details_from_env_vars(monkeypatch) -> None:
    monkeypatch.setenv("CHECKS_NAME", "Coverage")
    monkeypatch.setenv("CHECKS_STATUS", "in_progress")

    details = details_from_args(build_argparser().parse_args([]))

    assert details.name == "Coverage"
    assert details.status == ChecksStatus.IN_PROGRESS
    assert details.conclusion == ChecksConclusion.NONE
    assert details.started_at is not None
    assert details.output is None


def test_details_from_config_file(tmp_path: Path) -> None:
    config_fp = tmp_path / "checks.conf"
    config_fp.write_text(
        "name = Coverage\nstatus = completed\nconclusion = success\n",
        encoding="utf-8",
    )

    details = details_from_args(
        build_argparser().parse_args(["--config", str(config_fp)]),
    )

    assert details.conclusion == ChecksConclusion.SUCCESS
    assert details.completed_at is not None


def test_output_requires_title_and_summary() -> None:
    args = build_argparser().parse_args(
        ["--name", "Lint", "--status", "queued", "--summary", "no title"],
    )
    with pytest.raises(MissingValueError):
        details_from_args(args)


def test_main_prints_json_and_publishes(capsys) -> None:
    publisher = RecordingPublisher()

    exit_code = main(
        ["--name", "Coverage", "--status", "completed", "--conclusion", "success"],
        publisher=publisher,
    )

    assert exit_code == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["name"] == "Coverage"
    assert printed["conclusion"] == "success"
    assert [d.name for d in publisher.published] == ["Coverage"]


@pytest.mark.parametrize(
    "argv",
    [
        ["--name", "Coverage", "--status", "completed"],
        ["--name", "Coverage", "--status", "queued", "--conclusion", "success"],
        ["--name", " ", "--status", "queued"],
        ["--name", "Coverage", "--status", "queued", "--details-url", "ftp://x"],
        ["--name", "Coverage", "--status", "queued", "--action", "l" * 30, "d", "i"],
    ],
)
def test_main_rejects_invalid_check_runs(argv, caplog) -> None:
    publisher = RecordingPublisher()

    assert main(argv, publisher=publisher) == 1
    assert "[checks-api] Invalid check run" in caplog.text
    assert publisher.published == []


def test_main_reports_missing_annotations_file(tmp_path: Path, caplog) -> None:
    missing_fp = tmp_path / "missing.json"

    exit_code = main(
        [
            "--name",
            "Lint",
            "--status",
            "queued",
            "--title",
            "Lint",
            "--summary",
            "pending",
            "--annotations-json",
            str(missing_fp),
        ],
        publisher=RecordingPublisher(),
    )

    assert exit_code == 1
    assert "Cannot read annotations file" in caplog.text


def test_invalid_status_is_rejected_by_parser() -> None:
    with pytest.raises(SystemExit):
        build_argparser().parse_args(["--name", "Lint", "--status", "done"])


def test_main_rejects_annotations_file_not_in_utf8(tmp_path: Path, caplog) -> None:
    json_fp = tmp_path / "annotations.json"
    json_fp.write_bytes(b"\xff\xfe[]")
    publisher = RecordingPublisher()

    exit_code = main(
        [
            "--name",
            "Lint",
            "--status",
            "queued",
            "--title",
            "Lint",
            "--summary",
            "pending",
            "--annotations-json",
            str(json_fp),
        ],
        publisher=publisher,
    )

    assert exit_code == 1
    assert "[checks-api] Invalid check run" in caplog.text
    assert publisher.published == []
