"""The benchmark pipeline: head commit to published result, one stage at a time."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
import threading

from benchwatch.config import Settings
from benchwatch.errors import BuildError, ConfigurationError, PipelineError
from benchwatch.models.container import ImageRef
from benchwatch.models.pipeline import PipelineOutcome
from benchwatch.models.scm import CommitRef
from benchwatch.pipeline.controller import canonical_result_path, run_and_extract
from benchwatch.pipeline.notifier import notify
from benchwatch.pipeline.recipe import BuildRecipe, build_recipe
from benchwatch.pipeline.sandbox import SandboxSpec, allocate_result_file
from benchwatch.pipeline.schedule import WEEKLY, Schedule
from benchwatch.providers.container.base import ContainerEngine
from benchwatch.providers.notify.base import NotificationPoster
from benchwatch.providers.scm.base import ScmProvider

logger = logging.getLogger(__name__)


class BenchmarkPipeline:
    """Runs fetch, build, benchmark, persist and notify for the head commit.

    Built images are memoised by ``(commit sha, recipe fingerprint)`` and the
    base image is only pulled again once ``schedule`` says it is stale. A
    commit whose benchmark completed is not benchmarked again.
    """

    def __init__(
        self,
        settings: Settings,
        scm: ScmProvider,
        engine: ContainerEngine,
        poster: NotificationPoster,
        schedule: Schedule = WEEKLY,
    ) -> None:
        self._settings = settings
        self._scm = scm
        self._engine = engine
        self._poster = poster
        self._schedule = schedule
        self._lock = threading.Lock()
        self._base: ImageRef | None = None
        self._base_pulled_at: datetime | None = None
        self._images: dict[tuple[str, str], str] = {}
        self._benchmarked: set[str] = set()
        self.last_outcome: PipelineOutcome | None = None
        self.last_error: str | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def evaluate(self, now: datetime | None = None) -> PipelineOutcome:
        now = now or datetime.now(timezone.utc)
        with self._lock:
            try:
                outcome = self._evaluate(now)
            except PipelineError as exc:
                self.last_error = str(exc)
                raise
            self.last_outcome = outcome
            self.last_error = None
            return outcome

    def _evaluate(self, now: datetime) -> PipelineOutcome:
        commit = self._head_commit()
        if commit.sha in self._benchmarked:
            logger.debug("%s already benchmarked", commit.short)
            return PipelineOutcome(commit=commit, skipped=True)
        logger.info("Benchmarking %s at %s", commit.repo, commit.short)
        source = self._fetch(commit)
        recipe = build_recipe(self._base_image(now))
        image_id = self._build(commit, recipe, source)

        settings = self._settings
        spec = self._allocate()
        try:
            envelope = run_and_extract(
                self._engine,
                image_id,
                spec,
                output_file=settings.output_file,
                notify_path=settings.slack_path,
            )
        except PipelineError:
            spec.host_result_path.unlink(missing_ok=True)
            raise
        # The result is durable from here on, whatever happens to the post.
        self._benchmarked.add(commit.sha)
        result_path = canonical_result_path(spec, settings.output_file)
        notified = notify(envelope, self._poster)
        return PipelineOutcome(
            commit=commit,
            image_id=image_id,
            result_path=result_path,
            notified=notified,
        )

    def _allocate(self) -> SandboxSpec:
        settings = self._settings
        try:
            return allocate_result_file(
                cpu=settings.docker_cpu,
                numa_node=settings.docker_numa_node,
                shm_size_gb=settings.docker_shm_size,
                tmp_dir=settings.tmp_dir,
            )
        except OSError as exc:
            where = settings.tmp_dir or "the temp directory"
            raise ConfigurationError(f"Cannot create result file in {where}: {exc}") from exc

    def _head_commit(self) -> CommitRef:
        try:
            return self._scm.head_commit(self._settings.repo)
        except (RuntimeError, OSError) as exc:
            raise PipelineError(f"Cannot resolve head of {self._settings.repo}: {exc}") from exc

    def _fetch(self, commit: CommitRef) -> Path:
        dest = self._settings.workspace / "src" / commit.repo.owner / commit.repo.name
        try:
            return self._scm.fetch(commit, dest)
        except (RuntimeError, OSError) as exc:
            raise BuildError(f"Cannot fetch {commit.short}: {exc}") from exc

    def _base_image(self, now: datetime) -> ImageRef:
        if self._base is None or self._schedule.is_stale(self._base_pulled_at, now):
            try:
                self._base = self._engine.pull(self._settings.base_image)
            except (RuntimeError, OSError) as exc:
                raise BuildError(f"Cannot pull {self._settings.base_image}: {exc}") from exc
            self._base_pulled_at = now
        return self._base

    def _build(self, commit: CommitRef, recipe: BuildRecipe, source: Path) -> str:
        key = (commit.sha, recipe.fingerprint())
        cached = self._images.get(key)
        if cached is not None and self._engine.image_exists(cached):
            logger.info("Reusing image %s for %s", cached, commit.short)
            return cached
        tag = f"benchwatch/{commit.repo.name.lower()}:{commit.short}"
        try:
            image_id = self._engine.build(recipe.render(), source, tag=tag, pull=False)
        except (RuntimeError, OSError) as exc:
            raise BuildError(f"Image build for {commit.short} failed: {exc}") from exc
        self._images[key] = image_id
        return image_id
