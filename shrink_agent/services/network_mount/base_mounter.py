"""Abstract Base Mounter - interface for platform mount operations."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import aiofiles.os

from ...models import CommandResult
from ..process_runner import ProcessRunner


class BaseMounter(ABC):
    """Abstract base class for platform-specific drive mapping."""

    def __init__(self, runner: ProcessRunner, timeout: Optional[float] = None):
        self._runner = runner
        self._timeout = timeout

    @abstractmethod
    async def get_mapped_remote(self, drive: str) -> Optional[str]:
        """Return the remote path mapped at drive, or None when nothing is mapped."""

    @abstractmethod
    async def create_mount(self, drive: str, remote_path: str, persistent: bool) -> CommandResult:
        """Map remote_path at drive."""

    @abstractmethod
    async def delete_mount(self, drive: str) -> CommandResult:
        """Remove the mapping at drive."""

    @abstractmethod
    def get_platform_name(self) -> str:
        """Get platform name for logging."""

    async def verify_mount_accessible(self, mount_point: str) -> Tuple[bool, bool]:
        """Verify mount point. Returns (is_mounted, is_accessible)."""
        try:
            path_exists = await asyncio.wait_for(aiofiles.os.path.exists(mount_point), timeout=5.0)
            if not path_exists:
                logging.debug(f"Mount point does not exist: {mount_point}")
                return False, False

            await asyncio.wait_for(aiofiles.os.listdir(mount_point), timeout=10.0)
            logging.debug(f"Mount point accessible: {mount_point}")
            return True, True

        except asyncio.TimeoutError:
            logging.warning(f"Accessibility check timed out for: {mount_point}")
            return True, False
        except OSError as e:
            logging.debug(f"Mount point not accessible: {mount_point} - {e}")
            return True, False
