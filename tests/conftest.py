"""
Pytest configuration and shared fixtures.

FakeHost stands in for the Windows machine: it answers `net use`, `git` and
the shrink tool the way the real commands do, and keeps a drive table and a
set of checkouts so tests can assert on the resulting host state.
"""

import asyncio
from pathlib import Path
from typing import Optional

import pytest

from shrink_agent.config import Settings
from shrink_agent.models import CommandResult

SHARE = r"\\fileserver\maintenance"
OTHER_SHARE = r"\\oldserver\archive"
REPO_URL = "https://git.example.com/tools/shrink-tool.git"
SCRIPT_NAME = "Shrink-Disk.ps1"

DEFAULT_REPORT = (
    "File,SizeBeforeMB,SizeAfterMB,Status\n"
    "disk01.vhdx,10240,6144,Shrunk\n"
    "disk02.vhdx,2048,2048,Skipped\n"
)


def _key(path) -> str:
    return str(Path(path).resolve())


class FakeHost:
    """Scripted ProcessRunner replacement simulating net use, git and the shrink tool."""

    def __init__(self):
        self.calls: list[list[str]] = []
        self.drives: dict[str, str] = {}
        self.repos: dict[str, str] = {}
        self.failures: dict[str, int] = {}
        self.interrupt_once: set[str] = set()  # Same keys as failures, raise CancelledError once
        self.shrink_exit_code = 0
        self.shrink_report: Optional[str] = DEFAULT_REPORT

    async def run(self, args, *, timeout=None, cwd=None, env=None) -> CommandResult:
        cmd = [str(a) for a in args]
        self.calls.append(cmd)

        if cmd[0] == "net":
            returncode, stdout, stderr = self._net(cmd)
        elif cmd[0] == "git":
            returncode, stdout, stderr = self._git(cmd)
        else:
            returncode, stdout, stderr = self._shrink(cmd)

        return CommandResult(args=cmd, returncode=returncode, stdout=stdout, stderr=stderr)

    # -- inspection helpers -------------------------------------------------

    def calls_for(self, *prefix: str) -> list[list[str]]:
        return [c for c in self.calls if c[: len(prefix)] == list(prefix)]

    @property
    def mutating_net_calls(self) -> list[list[str]]:
        return [c for c in self.calls if c[0] == "net" and len(c) > 3]

    @property
    def git_commands(self) -> list[str]:
        """Git subcommands in call order, without -C arguments."""
        names = []
        for c in self.calls:
            if c[0] != "git":
                continue
            rest = c[3:] if c[1] == "-C" else c[1:]
            names.append(rest[0])
        return names

    @property
    def shrink_calls(self) -> list[list[str]]:
        return [c for c in self.calls if c[0] not in ("net", "git")]

    # -- simulated tools ----------------------------------------------------

    def _net(self, cmd):
        drive = cmd[2]
        if len(cmd) == 3:
            if drive not in self.drives:
                return 2, "", "The network connection could not be found.\r\n"
            stdout = (
                f"Local name        {drive}\r\n"
                f"Remote name       {self.drives[drive]}\r\n"
                "Resource type     Disk\r\n"
                "Status            OK\r\n"
                "The command completed successfully.\r\n"
            )
            return 0, stdout, ""

        if "/delete" in cmd:
            if "net-delete" in self.interrupt_once:
                self.interrupt_once.discard("net-delete")
                raise asyncio.CancelledError()
            if "net-delete" in self.failures:
                return self.failures["net-delete"], "", "System error 5 has occurred.\r\nAccess is denied.\r\n"
            if drive not in self.drives:
                return 2, "", "The network connection could not be found.\r\n"
            del self.drives[drive]
            return 0, f"{drive} was deleted successfully.\r\n", ""

        if "net-create" in self.failures:
            return self.failures["net-create"], "", "System error 53 has occurred.\r\nThe network path was not found.\r\n"
        if drive in self.drives:
            return 2, "", "System error 85 has occurred.\r\nThe local device name is already in use.\r\n"
        self.drives[drive] = cmd[3]
        return 0, "The command completed successfully.\r\n", ""

    def _git(self, cmd):
        workdir = None
        rest = cmd[1:]
        if rest[0] == "-C":
            workdir, rest = rest[1], rest[2:]

        if rest[0] == "clone":
            url, dest = rest[-2], Path(rest[-1])
            if "clone" in self.failures:
                return self.failures["clone"], "", f"fatal: repository '{url}' not found\n"
            (dest / ".git").mkdir(parents=True)
            (dest / SCRIPT_NAME).write_text("param($Path, [switch]$Recurse, $LogPath)\n")
            self.repos[_key(dest)] = url
            return 0, "", f"Cloning into '{dest}'...\n"

        if rest[0] == "pull":
            if "pull" in self.failures:
                return self.failures["pull"], "", "fatal: Not possible to fast-forward, aborting.\n"
            return 0, "Already up to date.\n", ""

        if rest[:2] == ["rev-parse", "--show-toplevel"]:
            here = Path(workdir).resolve()
            for root in self.repos:
                root_path = Path(root)
                if here == root_path or root_path in here.parents:
                    return 0, f"{root_path.as_posix()}\n", ""
            return 128, "", "fatal: not a git repository (or any of the parent directories): .git\n"

        if rest[:3] == ["config", "--get", "remote.origin.url"]:
            origin = self.repos.get(_key(workdir))
            if origin is None:
                return 1, "", ""
            return 0, f"{origin}\n", ""

        return 0, "", ""

    def _shrink(self, cmd):
        log_path = Path(cmd[cmd.index("-LogPath") + 1])
        if self.shrink_report is not None:
            log_path.write_text(self.shrink_report, encoding="utf-8")
        if self.shrink_exit_code:
            return self.shrink_exit_code, "Processing...\n", "Optimize-VHD : The file is in use.\n"
        return 0, "Processing...\nDone.\n", ""


@pytest.fixture
def fake_host():
    return FakeHost()


@pytest.fixture
def make_settings(tmp_path):
    """Build Settings pointing every path at tmp_path; ignores env files."""

    def _make(**overrides) -> Settings:
        values = dict(
            network_share_path=SHARE,
            repository_url=REPO_URL,
            drive_letter="Z:",
            cache_root=str(tmp_path / "cache"),
            shrink_log_path=str(tmp_path / "reports" / "shrink_log.csv"),
            workbook_path=str(tmp_path / "reports" / "shrink_report.xlsx"),
            log_file_path=str(tmp_path / "logs" / "shrink_agent.log"),
            remount_delay_seconds=0,
            reclone_delay_seconds=0,
            shrink_interpreter=["pwsh", "-NoProfile", "-File"],
        )
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()
