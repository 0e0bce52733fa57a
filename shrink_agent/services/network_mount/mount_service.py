"""Network Mount Service - drive mapping orchestrator."""

import asyncio
import logging
from typing import Optional

from ...config import Settings
from ...core.exceptions import MountError
from ...models import CommandResult, MountAction, MountInfo
from ..process_runner import ProcessRunner
from .base_mounter import BaseMounter
from .platform_factory import PlatformFactory, UnsupportedPlatformError
from .windows_mounter import normalise_remote_path


class NetworkMountService:
    """Keeps one drive letter bound to the configured share. Mount orchestration ONLY."""

    def __init__(
        self,
        settings: Settings,
        runner: Optional[ProcessRunner] = None,
        mounter: Optional[BaseMounter] = None,
    ):
        self._settings = settings
        self._platform_factory = PlatformFactory()
        self._mounter = mounter
        self._mounter_error: Optional[str] = None
        if self._mounter is None:
            self._initialize_mounter(runner or ProcessRunner())

    def _initialize_mounter(self, runner: ProcessRunner) -> None:
        """Initialize platform-specific mounter."""
        try:
            self._mounter = self._platform_factory.create_mounter(
                runner, timeout=self._settings.mount_timeout_seconds
            )
            logging.debug(f"Initialized {self._mounter.get_platform_name()} mounter")
        except UnsupportedPlatformError as e:
            logging.error(f"Error initializing network mounter: {e}")
            self._mounter_error = str(e)
            self._mounter = None

    def _require_mounter(self) -> BaseMounter:
        if self._mounter is None:
            raise MountError("No drive mounter available", self._mounter_error)
        return self._mounter

    async def ensure_mounted(self, drive: str, remote_path: str) -> MountInfo:
        """Make drive point at remote_path, remapping once if it points elsewhere."""
        mounter = self._require_mounter()
        persistent = self._settings.persistent_mount

        current = await mounter.get_mapped_remote(drive)

        if current is not None and normalise_remote_path(current) == normalise_remote_path(remote_path):
            logging.info(f"{drive} already mapped to {current}, nothing to do")
            return MountInfo(
                drive=drive,
                remote_path=current,
                persistent=persistent,
                action=MountAction.ALREADY_MOUNTED,
            )

        action = MountAction.CREATED
        if current is not None:
            logging.warning(f"{drive} is mapped to {current}, remapping to {remote_path}")
            self._raise_on_failure(
                await mounter.delete_mount(drive),
                f"Could not remove existing mapping {drive} -> {current}",
            )
            # Give the redirector time to release the drive letter
            await asyncio.sleep(self._settings.remount_delay_seconds)
            action = MountAction.REMAPPED

        self._raise_on_failure(
            await mounter.create_mount(drive, remote_path, persistent),
            f"Could not map {remote_path} to {drive}",
        )

        info = MountInfo(drive=drive, remote_path=remote_path, persistent=persistent, action=action)
        is_mounted, is_accessible = await mounter.verify_mount_accessible(info.mount_point)
        if not (is_mounted and is_accessible):
            logging.warning(f"Mapped {info.mount_point} but it is not accessible yet")

        logging.info(f"Mapped {remote_path} as {info.mount_point} ({action.value.lower()})")
        return info

    async def unmount(self, drive: str) -> bool:
        """Remove the mapping at drive. Returns False when nothing was mapped."""
        mounter = self._require_mounter()

        current = await mounter.get_mapped_remote(drive)
        if current is None:
            logging.info(f"{drive} is not mapped, nothing to unmount")
            return False

        self._raise_on_failure(
            await mounter.delete_mount(drive),
            f"Could not unmount {drive} ({current})",
        )
        logging.info(f"Unmounted {drive} ({current})")
        return True

    def get_platform_info(self) -> dict:
        """Get platform and mounter information."""
        try:
            platform_name = self._platform_factory.detect_platform()
        except UnsupportedPlatformError:
            platform_name = "unknown"

        return {
            "platform": platform_name,
            "mounter": self._mounter.get_platform_name() if self._mounter else None,
            "mounter_available": self._mounter is not None,
            "drive_letter": self._settings.drive_letter,
            "network_share_path": self._settings.network_share_path,
            "persistent_mount": self._settings.persistent_mount,
        }

    @staticmethod
    def _raise_on_failure(result: CommandResult, message: str) -> None:
        if result.ok:
            return
        if result.timed_out:
            raise MountError(f"{message} (timed out)")
        raise MountError(f"{message} (exit code {result.returncode})", result.output_tail() or None)
