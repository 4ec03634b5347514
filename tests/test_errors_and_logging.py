import json
from pathlib import Path

from aahbuild.errors import AahBuildError, ArchiveError, ErrorCode, MountPathError
from aahbuild.observability import StructuredLogger


def test_error_carries_code_hint_and_context() -> None:
    error = MountPathError(
        "Mount physical path does not exist.",
        hint="Create the directory.",
        context={"physical_path": "/srv/static", "empty": ""},
    )

    assert isinstance(error, AahBuildError)
    assert error.code == ErrorCode.MOUNT_PATH.value
    assert error.summary == "Mount physical path does not exist."
    assert str(error) == (
        "Mount physical path does not exist.\n"
        "Hint: Create the directory.\n"
        "  physical_path: /srv/static"
    )


def test_to_dict_omits_missing_hint() -> None:
    payload = ArchiveError("Unable to write archive.", context={"path": "/out.zip"}).to_dict()

    assert payload == {
        "code": "E_ARCHIVE",
        "message": "Unable to write archive.\n  path: /out.zip",
        "context": {"path": "/out.zip"},
    }


def test_logger_collects_and_echoes_records() -> None:
    echoed: list[dict[str, object]] = []
    logger = StructuredLogger(echo=echoed.append)

    logger.info("build", "Build starts", stage="init")
    logger.warning("embed", "Skipping mount", stage="embedding_assets", mount="/gone")
    logger.error("build", "Compile failed", stage="failed", code="E_COMPILE")

    assert echoed == logger.records
    assert logger.records[0] == {
        "level": "info",
        "operation": "build",
        "stage": "init",
        "message": "Build starts",
    }
    assert logger.records_for_stage("embedding_assets")[0]["extra"] == {"mount": "/gone"}
    assert [r["message"] for r in logger.records_at_level("error")] == ["Compile failed"]


def test_logger_writes_json_lines(tmp_path: Path) -> None:
    logger = StructuredLogger()
    logger.info("archive", "Archive written", stage="archiving", path="/out.zip")

    output = logger.to_json_lines(tmp_path / "logs" / "build.jsonl")

    lines = output.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["extra"] for line in lines] == [{"path": "/out.zip"}]
