from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from benchwatch.errors import (
    BuildError,
    ConfigurationError,
    ExecutionError,
    NotificationError,
    PersistenceError,
)
from benchwatch.models.pipeline import SlackChannel
from benchwatch.pipeline.orchestrator import BenchmarkPipeline
from conftest import RESULT, FakeEngine, FakePoster

NOW = datetime(2026, 10, 1, tzinfo=timezone.utc)


def make_pipeline(settings, scm, engine, poster):
    return BenchmarkPipeline(settings, scm=scm, engine=engine, poster=poster)


def test_full_run_without_publication(settings, scm, engine, poster):
    outcome = make_pipeline(settings, scm, engine, poster).evaluate(NOW)
    assert not outcome.skipped
    assert outcome.commit.sha == scm.sha
    assert outcome.result_path.parent == settings.tmp_dir
    assert outcome.result_path.read_bytes() == RESULT
    assert outcome.notified is False
    assert poster.posts == []
    assert engine.pulls == ["ocaml/opam2"]
    dockerfile, context, tag = engine.builds[0]
    assert dockerfile.startswith("FROM ocaml/opam2@sha256:")
    assert context == settings.workspace / "src" / "mirage" / "index"
    assert tag == f"benchwatch/index:{scm.sha[:12]}"


def test_output_file_without_notification(settings, scm, engine, poster, tmp_path):
    settings = replace(settings, output_file=tmp_path / "r.json")
    outcome = make_pipeline(settings, scm, engine, poster).evaluate(NOW)
    assert outcome.result_path == tmp_path / "r.json"
    assert outcome.notified is False
    assert poster.posts == []
    assert list(settings.tmp_dir.iterdir()) == []


def test_notification_with_pinned_sandbox(settings, scm, engine, poster, slack_file):
    settings = replace(settings, slack_path=slack_file, docker_cpu=3, docker_numa_node=1)
    outcome = make_pipeline(settings, scm, engine, poster).evaluate(NOW)
    assert outcome.notified is True
    assert poster.posts == [(SlackChannel(uri="https://hooks.example/abc"), RESULT, "output")]
    _, run_args, _ = engine.runs[0]
    assert run_args[run_args.index("--cpuset-cpus") + 1] == "3"
    assert run_args[run_args.index("--cpuset-mems") + 1] == "1"
    assert "/dev/shm:rw,noexec,nosuid,size=4G,mpol=bind:1" in run_args


def test_same_commit_is_not_rebuilt(settings, scm, engine, poster):
    pipeline = make_pipeline(settings, scm, engine, poster)
    pipeline.evaluate(NOW)
    second = pipeline.evaluate(NOW + timedelta(minutes=5))
    assert second.skipped
    assert len(engine.builds) == 1
    assert len(engine.runs) == 1


def test_image_reused_after_failed_run(settings, scm, poster):
    engine = FakeEngine(exit_code=1)
    pipeline = make_pipeline(settings, scm, engine, poster)
    with pytest.raises(ExecutionError):
        pipeline.evaluate(NOW)
    assert pipeline.last_error is not None
    assert list(settings.tmp_dir.iterdir()) == []
    engine.exit_code = 0
    outcome = pipeline.evaluate(NOW)
    assert not outcome.skipped
    assert len(engine.builds) == 1
    assert len(engine.runs) == 2
    assert pipeline.last_error is None


def test_new_commit_triggers_build(settings, scm, engine, poster):
    pipeline = make_pipeline(settings, scm, engine, poster)
    pipeline.evaluate(NOW)
    scm.sha = "b" * 40
    pipeline.evaluate(NOW)
    assert len(engine.builds) == 2
    assert len(engine.pulls) == 1


def test_base_image_refreshed_weekly(settings, scm, engine, poster):
    pipeline = make_pipeline(settings, scm, engine, poster)
    pipeline.evaluate(NOW)
    scm.sha = "b" * 40
    pipeline.evaluate(NOW + timedelta(days=6))
    assert len(engine.pulls) == 1
    scm.sha = "c" * 40
    pipeline.evaluate(NOW + timedelta(days=7))
    assert len(engine.pulls) == 2


def test_build_failure(settings, scm, poster):
    class Broken(FakeEngine):
        def build(self, *args, **kwargs):
            raise RuntimeError("dune build failed")

    with pytest.raises(BuildError, match="dune build failed"):
        make_pipeline(settings, scm, Broken(), poster).evaluate(NOW)


def test_notification_failure_keeps_result(settings, scm, engine, slack_file, tmp_path):
    settings = replace(settings, slack_path=slack_file, output_file=tmp_path / "r.json")
    poster = FakePoster(error=RuntimeError("unreachable"))
    pipeline = make_pipeline(settings, scm, engine, poster)
    with pytest.raises(NotificationError):
        pipeline.evaluate(NOW)
    assert (tmp_path / "r.json").read_bytes() == RESULT
    assert pipeline.evaluate(NOW).skipped


def test_bad_output_directory_leaves_no_temp_files(settings, scm, engine, poster, tmp_path):
    settings = replace(settings, output_file=tmp_path / "missing" / "r.json")
    pipeline = make_pipeline(settings, scm, engine, poster)
    for _ in range(3):
        with pytest.raises(PersistenceError):
            pipeline.evaluate(NOW)
        assert list(settings.tmp_dir.iterdir()) == []
    assert pipeline.last_error is not None
    assert len(engine.builds) == 1


def test_missing_tmp_dir_is_configuration_error(settings, scm, engine, poster, tmp_path):
    settings = replace(settings, tmp_dir=tmp_path / "nope")
    pipeline = make_pipeline(settings, scm, engine, poster)
    with pytest.raises(ConfigurationError, match="nope"):
        pipeline.evaluate(NOW)
    assert "Cannot create result file" in pipeline.last_error
    assert engine.runs == []
