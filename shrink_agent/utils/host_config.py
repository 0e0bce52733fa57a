"""
Host-specific configuration management utility.

Each maintenance host gets its own env file so share paths and drive letters
can differ per machine while sharing one base template.
"""

import logging
import shutil
import socket
from pathlib import Path

BASE_SETTINGS_FILE = "shrink_agent.env"
HOST_SETTINGS_SUFFIX = "-shrink_agent.env"


def get_hostname() -> str:
    """Get the current hostname (without domain)."""
    return socket.gethostname().split(".")[0]


def get_hostname_settings_file(base_dir: Path = Path(".")) -> str:
    """
    Get the settings file for this host.

    Logic:
    1. Look for {hostname}-shrink_agent.env
    2. If missing, create it from shrink_agent.env with a header
    3. If no base file exists either, fall back to shrink_agent.env

    Returns:
        str: Path to the settings file to load
    """
    base_settings = base_dir / BASE_SETTINGS_FILE
    try:
        hostname = get_hostname()
        host_settings = base_dir / f"{hostname}{HOST_SETTINGS_SUFFIX}"

        if host_settings.exists():
            logging.debug(f"Using existing host-specific configuration: {host_settings}")
            return str(host_settings)

        if not base_settings.exists():
            logging.debug(f"{BASE_SETTINGS_FILE} not found, using environment only")
            return str(base_settings)

        shutil.copy2(base_settings, host_settings)
        content = host_settings.read_text(encoding="utf-8")
        host_header = (
            f"# Host-specific configuration for: {hostname}\n"
            f"# Generated from {BASE_SETTINGS_FILE}, edit freely for this machine\n"
            "# ==========================================================\n\n"
        )
        host_settings.write_text(host_header + content, encoding="utf-8")
        logging.info(f"Created host-specific configuration: {host_settings}")
        return str(host_settings)

    except OSError as e:
        logging.error(f"Error handling host-specific settings: {e}")
        return str(base_settings)


def list_all_settings_files(base_dir: Path = Path(".")) -> list[str]:
    """List the base settings file and every host-specific one present."""
    settings_files = []

    base_settings = base_dir / BASE_SETTINGS_FILE
    if base_settings.exists():
        settings_files.append(str(base_settings))

    for file_path in sorted(base_dir.glob(f"*{HOST_SETTINGS_SUFFIX}")):
        settings_files.append(str(file_path))

    return settings_files
