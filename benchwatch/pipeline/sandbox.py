"""Container flags for an isolated, reproducible benchmark run."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path, PurePosixPath
import tempfile

SECCOMP_PROFILE = Path(__file__).resolve().parent.parent / "data" / "aslr_seccomp.json"
DEFAULT_SHM_SIZE_GB = 4
RESULT_PREFIX = "index-bench-result-"
RESULT_SUFFIX = ".txt"
CONTAINER_RESULT_DIR = PurePosixPath("/tmp")
BENCH_EXECUTABLE = "_build/default/bench/db_bench.exe"


def compose_args(
    cpu: int | None,
    numa_node: int | None,
    shm_size_gb: int,
    host_result_path: Path,
    container_result_path: PurePosixPath,
    seccomp_profile: Path = SECCOMP_PROFILE,
) -> list[str]:
    """Return ``docker run`` flags pinning the benchmark to ``cpu``/``numa_node``.

    ``/dev/shm`` is always a ``noexec,nosuid`` tmpfs of ``shm_size_gb``
    gigabytes; its pages are bound to ``numa_node`` only when one is given.
    """
    tmpfs = f"/dev/shm:rw,noexec,nosuid,size={shm_size_gb}G"
    if numa_node is not None:
        tmpfs += f",mpol=bind:{numa_node}"
    args = [
        "--security-opt",
        f"seccomp={seccomp_profile}",
        "--mount",
        f"type=bind,source={host_result_path},target={container_result_path}",
        "--tmpfs",
        tmpfs,
    ]
    if cpu is not None:
        args.extend(["--cpuset-cpus", str(cpu)])
    if numa_node is not None:
        args.extend(["--cpuset-mems", str(numa_node)])
    return args


def benchmark_command(container_result_path: PurePosixPath) -> list[str]:
    return [
        "/usr/bin/setarch",
        "x86_64",
        "--addr-no-randomize",
        BENCH_EXECUTABLE,
        "--bench",
        "index",
        "--json",
        str(container_result_path),
    ]


@dataclass(frozen=True)
class SandboxSpec:
    host_result_path: Path
    container_result_path: PurePosixPath
    cpu: int | None = None
    numa_node: int | None = None
    shm_size_gb: int = DEFAULT_SHM_SIZE_GB
    seccomp_profile: Path = SECCOMP_PROFILE

    def run_args(self) -> list[str]:
        return compose_args(
            self.cpu,
            self.numa_node,
            self.shm_size_gb,
            self.host_result_path,
            self.container_result_path,
            seccomp_profile=self.seccomp_profile,
        )

    def command(self) -> list[str]:
        return benchmark_command(self.container_result_path)


def container_path_for(host_result_path: Path) -> PurePosixPath:
    # The bind mount carries the file, so only the name has to match.
    return CONTAINER_RESULT_DIR / host_result_path.name


def allocate_result_file(
    cpu: int | None = None,
    numa_node: int | None = None,
    shm_size_gb: int = DEFAULT_SHM_SIZE_GB,
    tmp_dir: Path | None = None,
) -> SandboxSpec:
    """Create a uniquely named empty result file and the sandbox around it."""
    fd, name = tempfile.mkstemp(
        prefix=RESULT_PREFIX,
        suffix=RESULT_SUFFIX,
        dir=str(tmp_dir) if tmp_dir else None,
    )
    os.close(fd)
    # The benchmark runs as the image's build user, not the host owner.
    os.chmod(name, 0o666)
    host_result_path = Path(name)
    return SandboxSpec(
        host_result_path=host_result_path,
        container_result_path=container_path_for(host_result_path),
        cpu=cpu,
        numa_node=numa_node,
        shm_size_gb=shm_size_gb,
    )
