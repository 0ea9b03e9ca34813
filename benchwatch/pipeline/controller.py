"""Run the benchmark container and hand its result to the next stages."""

from __future__ import annotations

import logging
from pathlib import Path
import shutil

from benchwatch.errors import ExecutionError, PersistenceError
from benchwatch.models.pipeline import ResultEnvelope
from benchwatch.pipeline.sandbox import SandboxSpec
from benchwatch.providers.container.base import ContainerEngine

logger = logging.getLogger(__name__)


def run_benchmark(engine: ContainerEngine, image: str, spec: SandboxSpec) -> Path:
    """Run the benchmark and return the host path of its result file."""
    try:
        result = engine.run(image, spec.run_args(), spec.command())
    except (RuntimeError, OSError) as exc:
        raise ExecutionError(f"Benchmark run in {image} failed: {exc}") from exc
    if result.exit_code != 0:
        raise ExecutionError(
            f"Benchmark exited with status {result.exit_code}: {result.stderr.strip()}"
        )
    logger.info("Benchmark finished in %.1fs", result.duration_ms / 1000)
    return spec.host_result_path


def persist_result(source: Path, output_file: Path) -> Path:
    """Move ``source`` to ``output_file``, across filesystems if needed."""
    try:
        shutil.move(str(source), str(output_file))
    except OSError as exc:
        raise PersistenceError(
            f"Cannot move benchmark result {source} to {output_file}: {exc}"
        ) from exc
    logger.info("Benchmark result stored in %s", output_file)
    return output_file


def read_result(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ExecutionError(f"Benchmark produced no readable result {path}: {exc}") from exc


def canonical_result_path(spec: SandboxSpec, output_file: Path | None = None) -> Path:
    return output_file if output_file is not None else spec.host_result_path


def run_and_extract(
    engine: ContainerEngine,
    image: str,
    spec: SandboxSpec,
    output_file: Path | None = None,
    notify_path: Path | None = None,
) -> ResultEnvelope | None:
    """Run the benchmark, persist the result if asked, and build the envelope.

    The envelope is only built, and the result only read back into memory,
    when ``notify_path`` is set. Persisting to ``output_file`` does not
    depend on it.
    """
    results_path = run_benchmark(engine, image, spec)
    if output_file is not None:
        results_path = persist_result(results_path, output_file)
    if notify_path is None:
        return None
    return ResultEnvelope(notify_path=notify_path, payload=read_result(results_path))
