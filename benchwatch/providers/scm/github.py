"""GitHub SCM provider backed by the GitHub REST API and the git CLI."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import subprocess
from typing import Any, Sequence
import urllib.error
import urllib.parse
import urllib.request

from benchwatch.models.scm import CommitRef, RepositoryRef
from benchwatch.providers.scm.base import ScmProvider

logger = logging.getLogger(__name__)


class GitHubProvider(ScmProvider):
    def __init__(
        self,
        token: str | None = None,
        base_url: str = "https://api.github.com",
        timeout_s: float = 30.0,
    ) -> None:
        self._token = token or os.getenv("GITHUB_PAT") or os.getenv("GITHUB_TOKEN")
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s

    def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(url, data=data, method=method)
        request.add_header("Accept", "application/vnd.github+json")
        request.add_header("User-Agent", "benchwatch")
        if self._token:
            request.add_header("Authorization", f"Bearer {self._token}")
        if data is not None:
            request.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout_s) as response:
                raw = response.read()
                return json.loads(raw.decode("utf-8")) if raw else None
        except urllib.error.HTTPError as exc:
            body = exc.read().decode("utf-8")
            raise RuntimeError(f"GitHub API error {exc.code}: {body}") from exc

    def get_repo_default_branch(self, repo: RepositoryRef) -> str:
        response = self._request("GET", f"/repos/{repo.full_name}")
        if not isinstance(response, dict) or "default_branch" not in response:
            raise RuntimeError("Unexpected response from GitHub API.")
        return response["default_branch"]

    def head_commit(self, repo: RepositoryRef) -> CommitRef:
        branch = self.get_repo_default_branch(repo)
        quoted = urllib.parse.quote(branch, safe="")
        response = self._request("GET", f"/repos/{repo.full_name}/commits/{quoted}")
        if not isinstance(response, dict) or "sha" not in response:
            raise RuntimeError("Unexpected response from GitHub API.")
        commit = CommitRef(repo=repo, sha=response["sha"], branch=branch)
        logger.debug("Head of %s@%s is %s", repo, branch, commit.short)
        return commit

    def fetch(self, commit: CommitRef, dest: Path) -> Path:
        """Check out ``commit`` into ``dest``, reusing an existing clone there."""
        clone_url = self._apply_auth(commit.repo.clone_url)
        if not (dest / ".git").is_dir():
            dest.parent.mkdir(parents=True, exist_ok=True)
            self._run_git(["git", "clone", "--no-checkout", clone_url, str(dest)])
        self._run_git(["git", "fetch", "--quiet", clone_url, commit.sha], cwd=dest)
        self._run_git(["git", "checkout", "--quiet", "--force", commit.sha], cwd=dest)
        self._run_git(["git", "clean", "-fdxq"], cwd=dest)
        logger.info("Fetched %s at %s into %s", commit.repo, commit.short, dest)
        return dest

    def _apply_auth(self, url: str) -> str:
        if not self._token or not url.startswith("https://"):
            return url
        return url.replace("https://", f"https://x-access-token:{self._token}@", 1)

    def _run_git(
        self, command: Sequence[str], cwd: Path | None = None
    ) -> subprocess.CompletedProcess[str]:
        process = subprocess.run(
            list(command),
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        if process.returncode != 0:
            shown = " ".join(self._redact(part) for part in command)
            raise RuntimeError(
                f"Git command failed: {shown}\n{process.stderr.strip()}"
            )
        return process

    def _redact(self, part: str) -> str:
        if self._token and self._token in part:
            return part.replace(self._token, "***")
        return part
