"""Shrink Runner - invokes the external shrink tool against the mounted share."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

from ..config import Settings
from ..core.exceptions import ToolExecutionError
from ..models import ShrinkRunResult
from .process_runner import ProcessRunner


class ShrinkRunner:
    """Runs the shrink script as an opaque tool; exit status zero is the only success signal."""

    def __init__(self, settings: Settings, runner: Optional[ProcessRunner] = None):
        self._settings = settings
        self._runner = runner or ProcessRunner()

    def build_command(self, executable_path: Path, target_path: str, log_path: Path) -> list[str]:
        s = self._settings
        return [
            *s.shrink_interpreter,
            str(executable_path),
            s.shrink_path_flag,
            target_path,
            s.shrink_recurse_flag,
            s.shrink_log_flag,
            str(log_path),
        ]

    async def run_shrink(
        self,
        executable_path: Union[str, Path],
        target_path: str,
        log_path: Union[str, Path],
    ) -> ShrinkRunResult:
        executable_path = Path(executable_path)
        log_path = Path(log_path)

        if not executable_path.is_file():
            raise ToolExecutionError(
                f"Shrink script not found: {executable_path}", returncode=-1
            )

        try:
            await asyncio.to_thread(self._prepare_log_path, log_path)
        except OSError as e:
            raise ToolExecutionError(
                f"Cannot prepare shrink log {log_path}", returncode=-1, detail=str(e)
            ) from e

        cmd = self.build_command(executable_path.resolve(), target_path, log_path.resolve())
        logging.info(f"Running shrink tool on {target_path}, log: {log_path}")

        result = await self._runner.run(
            cmd,
            timeout=self._settings.shrink_timeout_seconds,
            cwd=executable_path.parent,
        )

        for line in result.stdout.splitlines():
            logging.debug(f"shrink: {line}")

        if result.timed_out:
            raise ToolExecutionError(
                f"Shrink tool timed out after {self._settings.shrink_timeout_seconds}s",
                returncode=result.returncode,
            )
        if not result.ok:
            raise ToolExecutionError(
                f"Shrink tool exited with code {result.returncode}",
                returncode=result.returncode,
                detail=result.output_tail() or None,
            )

        logging.info(f"Shrink tool finished in {result.duration_seconds:.1f}s")
        return ShrinkRunResult(
            command=cmd,
            log_path=log_path,
            duration_seconds=result.duration_seconds,
        )

    @staticmethod
    def _prepare_log_path(log_path: Path) -> None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        if log_path.exists():
            logging.debug(f"Removing stale shrink log {log_path}")
            log_path.unlink()
