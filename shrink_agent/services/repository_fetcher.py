"""Repository Fetcher - keeps a local checkout of the shrink tool current."""

import asyncio
import logging
import os
import shutil
import stat
import sys
from pathlib import Path
from typing import Optional, Union

from ..config import Settings
from ..core.exceptions import FetchError
from ..models import CommandResult, RepositoryAction, RepositoryState
from .process_runner import SPAWN_FAILURE_RETURNCODE, ProcessRunner

# Never block on a credential prompt; auth is the host's business
GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}


def normalise_remote_url(url: str) -> str:
    url = url.strip().rstrip("/")
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return url


def _make_writable_and_retry(func, path, _exc) -> None:
    # git marks pack files read-only, which rmtree cannot delete on Windows
    os.chmod(path, stat.S_IWRITE)
    func(path)


class RepositoryFetcher:
    """Clones, updates or replaces the local checkout of a remote repository."""

    def __init__(self, settings: Settings, runner: Optional[ProcessRunner] = None):
        self._settings = settings
        self._runner = runner or ProcessRunner()
        self._git = settings.git_executable

    async def ensure_repository(self, remote_url: str, local_dir: Union[str, Path]) -> RepositoryAction:
        """Bring local_dir to a current checkout of remote_url."""
        local_dir = Path(local_dir)
        state = await self.inspect(remote_url, local_dir)
        logging.debug(f"Repository state for {local_dir}: {state.value}")

        if state == RepositoryState.ABSENT:
            await self._clone(remote_url, local_dir)
            return RepositoryAction.CLONED

        if state == RepositoryState.CHECKOUT:
            await self._pull(local_dir)
            return RepositoryAction.UPDATED

        logging.warning(f"{local_dir} is not a checkout of {remote_url}, replacing it")
        await self._remove(local_dir)
        await asyncio.sleep(self._settings.reclone_delay_seconds)
        await self._clone(remote_url, local_dir)
        return RepositoryAction.RECLONED

    async def inspect(self, remote_url: str, local_dir: Union[str, Path]) -> RepositoryState:
        """Classify local_dir as absent, a checkout of remote_url, or foreign."""
        local_dir = Path(local_dir)
        if not os.path.lexists(local_dir):
            return RepositoryState.ABSENT
        if not local_dir.is_dir():
            return RepositoryState.FOREIGN

        toplevel = await self._git_run(["-C", str(local_dir), "rev-parse", "--show-toplevel"])
        # Without a working git client every directory would look foreign and get deleted
        if toplevel.timed_out or toplevel.returncode == SPAWN_FAILURE_RETURNCODE:
            self._raise_on_failure(toplevel, f"Cannot inspect {local_dir} with {self._git}")
        if not toplevel.ok:
            return RepositoryState.FOREIGN
        # A folder inside some enclosing repository is not our checkout
        if not self._same_path(Path(toplevel.stdout.strip()), local_dir):
            return RepositoryState.FOREIGN

        origin = await self._git_run(["-C", str(local_dir), "config", "--get", "remote.origin.url"])
        if not origin.ok:
            return RepositoryState.FOREIGN
        if normalise_remote_url(origin.stdout) != normalise_remote_url(remote_url):
            logging.info(f"{local_dir} tracks {origin.stdout.strip()}, expected {remote_url}")
            return RepositoryState.FOREIGN

        return RepositoryState.CHECKOUT

    async def _clone(self, remote_url: str, local_dir: Path) -> None:
        logging.info(f"Cloning {remote_url} into {local_dir}")
        try:
            local_dir.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FetchError(f"Cannot create cache directory {local_dir.parent}", str(e)) from e
        result = await self._git_run(["clone", "--", remote_url, str(local_dir)])
        self._raise_on_failure(result, f"git clone of {remote_url} failed")

    async def _pull(self, local_dir: Path) -> None:
        logging.info(f"Updating existing checkout {local_dir}")
        result = await self._git_run(["-C", str(local_dir), "pull", "--ff-only"])
        self._raise_on_failure(result, f"git pull in {local_dir} failed")

    async def _remove(self, local_dir: Path) -> None:
        def _sync_remove():
            if local_dir.is_dir() and not local_dir.is_symlink():
                if sys.version_info >= (3, 12):
                    shutil.rmtree(local_dir, onexc=_make_writable_and_retry)
                else:
                    shutil.rmtree(local_dir, onerror=_make_writable_and_retry)
            else:
                local_dir.unlink()

        try:
            await asyncio.to_thread(_sync_remove)
        except OSError as e:
            raise FetchError(f"Could not remove {local_dir}", str(e)) from e

    async def _git_run(self, args: list[str]) -> CommandResult:
        return await self._runner.run(
            [self._git, *args],
            timeout=self._settings.git_timeout_seconds,
            env=GIT_ENV,
        )

    @staticmethod
    def _same_path(a: Path, b: Path) -> bool:
        try:
            return os.path.samefile(a, b)
        except OSError:
            return os.path.normcase(a.resolve()) == os.path.normcase(b.resolve())

    @staticmethod
    def _raise_on_failure(result: CommandResult, message: str) -> None:
        if result.ok:
            return
        if result.timed_out:
            raise FetchError(f"{message} (timed out)")
        raise FetchError(f"{message} (exit code {result.returncode})", result.output_tail() or None)
