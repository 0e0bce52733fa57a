import re
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.host_config import get_hostname_settings_file

_DRIVE_RE = re.compile(r"^([A-Za-z]):?$")


class Settings(BaseSettings):
    # Network share
    drive_letter: str = "Z:"
    network_share_path: str
    persistent_mount: bool = False
    remount_delay_seconds: float = 2.0
    mount_timeout_seconds: Optional[float] = 60.0

    # External shrink tool repository
    repository_url: str
    cache_root: str = "cache"
    repository_directory_name: str = ""  # Derived from repository_url when empty
    git_executable: str = "git"
    git_timeout_seconds: Optional[float] = 300.0
    reclone_delay_seconds: float = 1.0

    # Shrink tool invocation
    shrink_script: str = "Shrink-Disk.ps1"  # Relative to the checkout
    shrink_interpreter: list[str] = Field(
        default_factory=lambda: [
            "powershell",
            "-NoProfile",
            "-ExecutionPolicy",
            "Bypass",
            "-File",
        ]
    )
    shrink_path_flag: str = "-Path"
    shrink_recurse_flag: str = "-Recurse"
    shrink_log_flag: str = "-LogPath"
    shrink_target_subpath: str = ""
    shrink_timeout_seconds: Optional[float] = None  # None = wait for the tool indefinitely

    # Report output
    shrink_log_path: str = "reports/shrink_log.csv"
    workbook_path: str = "reports/shrink_report.xlsx"
    csv_delimiter: str = ","
    workbook_sheet_title: str = "Shrink Report"
    conversion_timeout_seconds: Optional[float] = 300.0

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = True  # False = console only
    log_file_path: str = "logs/shrink_agent.log"
    log_retention_days: int = 30

    model_config = SettingsConfigDict(
        env_prefix="SHRINK_AGENT_",
        env_file=get_hostname_settings_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("drive_letter")
    @classmethod
    def _normalise_drive_letter(cls, value: str) -> str:
        match = _DRIVE_RE.match(value.strip())
        if not match:
            raise ValueError(f"Invalid drive letter: {value!r} (expected e.g. 'Z' or 'Z:')")
        return f"{match.group(1).upper()}:"

    @field_validator("network_share_path")
    @classmethod
    def _normalise_share_path(cls, value: str) -> str:
        path = value.strip().replace("/", "\\").rstrip("\\")
        if not path.startswith("\\\\") or len(path.strip("\\").split("\\")) < 2:
            raise ValueError(f"Network share must be a UNC path like \\\\server\\share, got {value!r}")
        return path

    @field_validator("repository_url")
    @classmethod
    def _require_repository_url(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("repository_url must not be empty")
        return value.strip()

    @field_validator("csv_delimiter")
    @classmethod
    def _single_char_delimiter(cls, value: str) -> str:
        if len(value) != 1:
            raise ValueError("csv_delimiter must be a single character")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def mount_point(self) -> str:
        return f"{self.drive_letter}\\"

    @property
    def repository_directory(self) -> Path:
        """Local checkout directory for the shrink tool repository."""
        name = self.repository_directory_name
        if not name:
            name = self.repository_url.rstrip("/").rsplit("/", 1)[-1]
            name = name.rsplit(":", 1)[-1]
            if name.endswith(".git"):
                name = name[: -len(".git")]
        return Path(self.cache_root) / name

    @property
    def shrink_script_path(self) -> Path:
        return self.repository_directory / self.shrink_script

    @property
    def shrink_target_path(self) -> str:
        """Path on the mounted share handed to the shrink tool."""
        subpath = self.shrink_target_subpath.strip().replace("/", "\\").strip("\\")
        if not subpath:
            return self.mount_point
        return f"{self.mount_point}{subpath}"

    @property
    def log_directory(self) -> Path:
        return Path(self.log_file_path).parent

    @property
    def config_file_info(self) -> dict:
        """Return information about which configuration file is being used."""
        from .utils.host_config import get_hostname, list_all_settings_files

        return {
            "hostname": get_hostname(),
            "active_config_file": get_hostname_settings_file(),
            "all_available_configs": list_all_settings_files(),
        }
