"""Windows Network Mounter - drive mapping through net use."""

import logging
from typing import Optional

from ...core.exceptions import MountError
from ...models import CommandResult
from .base_mounter import BaseMounter


def normalise_remote_path(remote_path: str) -> str:
    """Canonical form for comparing UNC paths (case-insensitive, no trailing slash)."""
    return remote_path.strip().replace("/", "\\").rstrip("\\").lower()


def parse_remote_name(net_use_output: str) -> Optional[str]:
    """Extract the remote name from `net use X:` output.

    The field labels are localised, so the first value that looks like a UNC
    path is taken instead of matching on "Remote name".
    """
    for line in net_use_output.splitlines():
        start = line.find("\\\\")
        if start != -1:
            return line[start:].strip()
    return None


class WindowsMounter(BaseMounter):
    """Windows-specific drive mapping. Wraps `net use` only."""

    async def get_mapped_remote(self, drive: str) -> Optional[str]:
        result = await self._runner.run(["net", "use", drive], timeout=self._timeout)
        if result.timed_out:
            raise MountError(f"Querying drive {drive} timed out")
        if not result.ok:
            # net use exits 2 with "The network connection could not be found"
            logging.debug(f"No mapping found at {drive}")
            return None

        remote = parse_remote_name(result.stdout)
        if remote is None:
            logging.warning(f"Drive {drive} is in use but no remote name was reported")
        return remote

    async def create_mount(self, drive: str, remote_path: str, persistent: bool) -> CommandResult:
        persistence = "yes" if persistent else "no"
        cmd = ["net", "use", drive, remote_path, f"/persistent:{persistence}"]
        logging.info(f"Mapping {remote_path} to {drive} (persistent: {persistence})")
        return await self._runner.run(cmd, timeout=self._timeout)

    async def delete_mount(self, drive: str) -> CommandResult:
        logging.info(f"Removing drive mapping {drive}")
        return await self._runner.run(["net", "use", drive, "/delete", "/y"], timeout=self._timeout)

    def get_platform_name(self) -> str:
        return "Windows"
