"""Runs the git client for clone, commit and push."""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

LOGGER = logging.getLogger("cluster_publisher.git")

_ASKPASS_USERNAME_ENV = "CLUSTER_PUBLISHER_GIT_USERNAME"
_ASKPASS_PASSWORD_ENV = "CLUSTER_PUBLISHER_GIT_PASSWORD"
_ASKPASS_SCRIPT = f"""#!/bin/sh
case "$1" in
  Username*) printf '%s' "${_ASKPASS_USERNAME_ENV}" ;;
  *) printf '%s' "${_ASKPASS_PASSWORD_ENV}" ;;
esac
"""
_MASK = "***"


@dataclass(frozen=True)
class GitAuth:
    username: str
    password: str = field(repr=False)


class GitCommandError(RuntimeError):
    def __init__(self, args: list[str], *, returncode: int, stderr: str) -> None:
        summary = next((arg for arg in args if not arg.startswith("-") and "=" not in arg), "")
        super().__init__(f"git {summary} failed (exit {returncode}): {stderr}".strip())
        self.git_args = args
        self.returncode = returncode
        self.stderr = stderr


class GitTransport:
    def __init__(self, *, git_binary: str = "git") -> None:
        self._git_binary = git_binary

    def clone(self, repo_url: str, branch: str, destination: Path, auth: GitAuth | None) -> None:
        """Clone one branch, without tags, into ``destination``."""
        self._run(
            [
                "clone",
                "--single-branch",
                "--branch",
                branch,
                "--no-tags",
                "--",
                repo_url,
                str(destination),
            ],
            cwd=destination.parent,
            auth=auth,
        )
        LOGGER.debug("cloned repository repo_url=%s branch=%s path=%s", repo_url, branch, destination)

    def stage_all(self, repo_dir: Path) -> None:
        self._run(["add", "--all"], cwd=repo_dir)

    def has_staged_changes(self, repo_dir: Path) -> bool:
        """Compare the index against HEAD."""
        try:
            self._run(["diff", "--cached", "--quiet", "HEAD"], cwd=repo_dir)
        except GitCommandError as exc:
            if exc.returncode == 1:
                return True
            raise
        return False

    def commit(self, repo_dir: Path, *, author_name: str, author_email: str, message: str) -> None:
        self._run(
            [
                "-c",
                f"user.name={author_name}",
                "-c",
                f"user.email={author_email}",
                "-c",
                "commit.gpgsign=false",
                "commit",
                "--no-verify",
                "--message",
                message,
            ],
            cwd=repo_dir,
        )

    def head_sha(self, repo_dir: Path) -> str:
        return self._run(["rev-parse", "HEAD"], cwd=repo_dir)

    def push(self, repo_dir: Path, branch: str, auth: GitAuth | None) -> None:
        self._run(
            ["push", "origin", f"HEAD:refs/heads/{branch}"],
            cwd=repo_dir,
            auth=auth,
        )

    def _run(self, args: list[str], *, cwd: Path, auth: GitAuth | None = None) -> str:
        with _auth_env(auth) as env:
            command = [self._git_binary]
            if auth is not None:
                # An empty helper list keeps stored credentials out of the exchange.
                command.extend(["-c", "credential.helper="])
            command.extend(args)
            try:
                result = subprocess.run(
                    command,
                    cwd=cwd,
                    env=env,
                    text=True,
                    capture_output=True,
                    check=False,
                )
            except OSError as exc:
                raise GitCommandError(args, returncode=-1, stderr=str(exc)) from exc

        if result.returncode != 0:
            stderr = _mask_secret(result.stderr.strip() or result.stdout.strip(), auth)
            raise GitCommandError(args, returncode=result.returncode, stderr=stderr)
        return result.stdout.strip()


@contextmanager
def _auth_env(auth: GitAuth | None) -> Iterator[dict[str, str]]:
    env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
    if auth is None:
        yield env
        return

    with tempfile.NamedTemporaryFile(
        mode="w",
        delete=False,
        prefix="git-askpass-",
        suffix=".sh",
        encoding="utf-8",
    ) as handle:
        handle.write(_ASKPASS_SCRIPT)
        askpass_path = Path(handle.name)
    askpass_path.chmod(0o700)
    env.update(
        {
            "GIT_ASKPASS": str(askpass_path),
            _ASKPASS_USERNAME_ENV: auth.username,
            _ASKPASS_PASSWORD_ENV: auth.password,
        }
    )
    try:
        yield env
    finally:
        askpass_path.unlink(missing_ok=True)


def _mask_secret(text: str, auth: GitAuth | None) -> str:
    if auth is None or not auth.password:
        return text
    return text.replace(auth.password, _MASK)
