"""Dockerfile recipe for building the benchmark executables."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib

from benchwatch.models.container import ImageRef

SYSTEM_PACKAGES = ("libffi-dev", "liblmdb-dev", "m4", "pkg-config", "gnuplot-x11")
BUILD_USER = "opam"
WORKDIR = "index"
BENCH_TARGETS = ("bench/main.exe", "bench/db_bench.exe")


@dataclass(frozen=True)
class BuildRecipe:
    steps: tuple[str, ...]

    def render(self) -> str:
        return "\n".join(self.steps) + "\n"

    def fingerprint(self) -> str:
        return hashlib.sha256(self.render().encode("utf-8")).hexdigest()


def build_recipe(base: ImageRef) -> BuildRecipe:
    """Return the recipe that installs dependencies and compiles the benchmarks.

    The fetched source tree is the build context. Dependencies are installed
    from the project's declared packages before the full tree is added, so
    the dependency layer survives source-only changes.
    """
    return BuildRecipe(
        steps=(
            f"FROM {base.pinned}",
            "RUN sudo apt-get install -qq -yy " + " ".join(SYSTEM_PACKAGES),
            f"COPY --chown={BUILD_USER}:{BUILD_USER} . {WORKDIR}",
            f"WORKDIR {WORKDIR}",
            "RUN opam install -y --deps-only -t .",
            f"ADD --chown={BUILD_USER} . .",
            "RUN opam config exec -- dune build @@default " + " ".join(BENCH_TARGETS),
            "RUN eval $(opam env)",
        )
    )
