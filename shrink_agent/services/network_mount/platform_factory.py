"""Platform Factory - platform detection and mounter creation."""

import platform
from typing import Optional

from ..process_runner import ProcessRunner
from .base_mounter import BaseMounter


class UnsupportedPlatformError(Exception):
    """Raised when platform is not supported for drive mapping."""
    pass


class PlatformFactory:
    """Factory for creating platform-specific mount implementations."""

    def detect_platform(self) -> str:
        """Detect current platform. Returns: windows, macos or linux."""
        system = platform.system().lower()

        if system == "windows":
            return "windows"
        elif system == "darwin":
            return "macos"
        elif system == "linux":
            return "linux"
        else:
            raise UnsupportedPlatformError(f"Platform {system} not supported for drive mapping")

    def create_mounter(self, runner: ProcessRunner, timeout: Optional[float] = None) -> BaseMounter:
        """Create platform-specific mounter instance."""
        platform_name = self.detect_platform()

        if platform_name == "windows":
            from .windows_mounter import WindowsMounter
            return WindowsMounter(runner, timeout=timeout)

        raise UnsupportedPlatformError(
            f"Drive letter mapping is only implemented for Windows, not {platform_name}"
        )
