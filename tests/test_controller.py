from pathlib import Path

import pytest

from benchwatch.errors import ExecutionError, PersistenceError
from benchwatch.pipeline.controller import canonical_result_path, run_and_extract
from benchwatch.pipeline.sandbox import allocate_result_file
from conftest import RESULT, FakeEngine


@pytest.fixture
def spec(tmp_path):
    return allocate_result_file(cpu=3, numa_node=1, tmp_dir=tmp_path)


def test_no_output_no_notify(engine, spec):
    assert run_and_extract(engine, "img", spec) is None
    assert canonical_result_path(spec) == spec.host_result_path
    assert spec.host_result_path.read_bytes() == RESULT
    image, run_args, command = engine.runs[0]
    assert image == "img"
    assert run_args == spec.run_args()
    assert command == spec.command()


def test_output_file_moves_result(engine, spec, tmp_path):
    output = tmp_path / "results" / "r.json"
    output.parent.mkdir()
    assert run_and_extract(engine, "img", spec, output_file=output) is None
    assert canonical_result_path(spec, output) == output
    assert output.read_bytes() == RESULT
    assert not spec.host_result_path.exists()


def test_notify_reads_temporary_result(engine, spec, slack_file):
    envelope = run_and_extract(engine, "img", spec, notify_path=slack_file)
    assert envelope is not None
    assert envelope.notify_path == slack_file
    assert envelope.payload == RESULT


def test_notify_reads_persisted_result(engine, spec, slack_file, tmp_path):
    output = tmp_path / "r.json"
    envelope = run_and_extract(engine, "img", spec, output_file=output, notify_path=slack_file)
    assert envelope.payload == output.read_bytes()


def test_failed_run_is_fatal(spec, tmp_path):
    output = tmp_path / "r.json"
    with pytest.raises(ExecutionError):
        run_and_extract(FakeEngine(exit_code=2), "img", spec, output_file=output)
    assert not output.exists()


def test_engine_error_is_execution_error(spec):
    class Broken(FakeEngine):
        def run(self, *args, **kwargs):
            raise RuntimeError("docker daemon unavailable")

    with pytest.raises(ExecutionError, match="docker daemon unavailable"):
        run_and_extract(Broken(), "img", spec)


def test_unwritable_output_is_persistence_error(engine, spec, tmp_path):
    output = tmp_path / "missing-dir" / "r.json"
    with pytest.raises(PersistenceError):
        run_and_extract(engine, "img", spec, output_file=output)
    assert spec.host_result_path.exists()
