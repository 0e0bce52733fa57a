"""
Tests for NetworkMountService.

Covers the three mount situations (free drive, correct mapping, foreign
mapping), failure escalation and unmount behaviour.
"""

from unittest.mock import patch

import pytest

from conftest import OTHER_SHARE, SHARE
from shrink_agent.core.exceptions import MountError
from shrink_agent.models import MountAction
from shrink_agent.services.network_mount import (
    NetworkMountService,
    UnsupportedPlatformError,
    WindowsMounter,
)


@pytest.fixture
def mount_service(settings, fake_host):
    return NetworkMountService(settings, mounter=WindowsMounter(fake_host))


class TestEnsureMounted:
    @pytest.mark.asyncio
    async def test_free_drive_is_mapped(self, mount_service, fake_host):
        info = await mount_service.ensure_mounted("Z:", SHARE)

        assert info.action == MountAction.CREATED
        assert info.mount_point == "Z:\\"
        assert fake_host.drives == {"Z:": SHARE}
        assert fake_host.mutating_net_calls == [["net", "use", "Z:", SHARE, "/persistent:no"]]

    @pytest.mark.asyncio
    async def test_existing_correct_mapping_makes_no_mutating_calls(self, mount_service, fake_host):
        fake_host.drives["Z:"] = SHARE

        for _ in range(3):
            info = await mount_service.ensure_mounted("Z:", SHARE)
            assert info.action == MountAction.ALREADY_MOUNTED

        assert fake_host.mutating_net_calls == []
        assert fake_host.drives == {"Z:": SHARE}

    @pytest.mark.asyncio
    async def test_mapping_comparison_ignores_case_and_trailing_slash(self, mount_service, fake_host):
        fake_host.drives["Z:"] = "\\\\FILESERVER\\Maintenance\\"

        info = await mount_service.ensure_mounted("Z:", SHARE)

        assert info.action == MountAction.ALREADY_MOUNTED
        assert fake_host.mutating_net_calls == []

    @pytest.mark.asyncio
    async def test_foreign_mapping_is_remapped(self, mount_service, fake_host):
        fake_host.drives["Z:"] = OTHER_SHARE

        with patch("asyncio.sleep") as mock_sleep:
            info = await mount_service.ensure_mounted("Z:", SHARE)

        assert info.action == MountAction.REMAPPED
        assert fake_host.drives == {"Z:": SHARE}
        assert fake_host.mutating_net_calls == [
            ["net", "use", "Z:", "/delete", "/y"],
            ["net", "use", "Z:", SHARE, "/persistent:no"],
        ]
        mock_sleep.assert_awaited_once_with(0)

    @pytest.mark.asyncio
    async def test_failed_delete_during_remap_is_fatal(self, mount_service, fake_host):
        fake_host.drives["Z:"] = OTHER_SHARE
        fake_host.failures["net-delete"] = 2

        with pytest.raises(MountError) as exc_info:
            await mount_service.ensure_mounted("Z:", SHARE)

        assert "Access is denied" in str(exc_info.value)
        # No create attempt after the failed delete
        assert len(fake_host.mutating_net_calls) == 1
        assert fake_host.drives == {"Z:": OTHER_SHARE}

    @pytest.mark.asyncio
    async def test_failed_create_is_fatal(self, mount_service, fake_host):
        fake_host.failures["net-create"] = 2

        with pytest.raises(MountError) as exc_info:
            await mount_service.ensure_mounted("Z:", SHARE)

        assert "exit code 2" in str(exc_info.value)
        assert fake_host.drives == {}

    @pytest.mark.asyncio
    async def test_persistent_flag_from_settings(self, make_settings, fake_host):
        service = NetworkMountService(make_settings(persistent_mount=True), mounter=WindowsMounter(fake_host))

        info = await service.ensure_mounted("Z:", SHARE)

        assert info.persistent is True
        assert fake_host.mutating_net_calls[-1][-1] == "/persistent:yes"


class TestUnmount:
    @pytest.mark.asyncio
    async def test_unmount_existing_mapping(self, mount_service, fake_host):
        fake_host.drives["Z:"] = SHARE

        assert await mount_service.unmount("Z:") is True
        assert fake_host.drives == {}

    @pytest.mark.asyncio
    async def test_unmount_free_drive_is_noop(self, mount_service, fake_host):
        assert await mount_service.unmount("Z:") is False
        assert fake_host.mutating_net_calls == []

    @pytest.mark.asyncio
    async def test_unmount_failure_raises(self, mount_service, fake_host):
        fake_host.drives["Z:"] = SHARE
        fake_host.failures["net-delete"] = 2

        with pytest.raises(MountError):
            await mount_service.unmount("Z:")


class TestPlatformSelection:
    @pytest.mark.asyncio
    async def test_unsupported_platform_surfaces_as_mount_error(self, settings, fake_host):
        with patch(
            "shrink_agent.services.network_mount.mount_service.PlatformFactory.create_mounter",
            side_effect=UnsupportedPlatformError("no mounter for linux"),
        ):
            service = NetworkMountService(settings, runner=fake_host)

        assert service.get_platform_info()["mounter_available"] is False
        with pytest.raises(MountError) as exc_info:
            await service.ensure_mounted("Z:", SHARE)
        assert "no mounter for linux" in str(exc_info.value)

    def test_windows_platform_creates_windows_mounter(self, settings, fake_host):
        with patch("platform.system", return_value="Windows"):
            service = NetworkMountService(settings, runner=fake_host)

        info = service.get_platform_info()
        assert info["mounter"] == "Windows"
        assert info["drive_letter"] == "Z:"
