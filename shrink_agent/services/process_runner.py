"""Process Runner - typed wrapper around external tool invocations."""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from ..models import CommandResult

# Conventional shell status for "command not found"
SPAWN_FAILURE_RETURNCODE = 127
TIMEOUT_RETURNCODE = -1


class ProcessRunner:
    """Runs external commands and reports a CommandResult instead of raising."""

    async def run(
        self,
        args: Sequence[Union[str, Path]],
        *,
        timeout: Optional[float] = None,
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        cmd = [str(arg) for arg in args]
        logging.debug(f"Running: {' '.join(cmd)}")

        process_env = None
        if env:
            process_env = os.environ.copy()
            process_env.update(env)

        started = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd) if cwd is not None else None,
                env=process_env,
            )
        except OSError as e:
            logging.error(f"Could not start {cmd[0]}: {e}")
            return CommandResult(
                args=cmd,
                returncode=SPAWN_FAILURE_RETURNCODE,
                stderr=str(e),
                duration_seconds=time.monotonic() - started,
            )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            result = CommandResult(
                args=cmd,
                returncode=TIMEOUT_RETURNCODE,
                duration_seconds=time.monotonic() - started,
                timed_out=True,
            )
            logging.error(f"Command timed out after {timeout}s: {result.command_line}")
            return result
        except asyncio.CancelledError:
            # Interrupted run, do not leave the child behind
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        result = CommandResult(
            args=cmd,
            returncode=process.returncode,
            stdout=self._decode(stdout),
            stderr=self._decode(stderr),
            duration_seconds=time.monotonic() - started,
        )
        logging.debug(
            f"Finished {result.command_line} with exit code {result.returncode} "
            f"in {result.duration_seconds:.1f}s"
        )
        return result

    @staticmethod
    def _decode(data: Optional[bytes]) -> str:
        if not data:
            return ""
        return data.decode("utf-8", errors="replace")
