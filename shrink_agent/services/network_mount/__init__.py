"""
Network Mount Module

Maps the maintenance share to a local drive letter and removes the mapping
again when the workflow ends.

Components:
- NetworkMountService: ensure_mounted / unmount orchestration
- BaseMounter: abstract platform operations (query, create, delete, verify)
- WindowsMounter: `net use` implementation
- PlatformFactory: platform detection and mounter creation
"""

from .base_mounter import BaseMounter
from .mount_service import NetworkMountService
from .platform_factory import PlatformFactory, UnsupportedPlatformError
from .windows_mounter import WindowsMounter

__all__ = [
    "NetworkMountService",
    "BaseMounter",
    "WindowsMounter",
    "PlatformFactory",
    "UnsupportedPlatformError",
]
