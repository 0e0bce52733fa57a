"""Cleanup Handler - idempotent drive release shared by every exit path."""

import asyncio
import atexit
import logging

from ..core.exceptions import WorkflowError
from .network_mount import NetworkMountService


class CleanupHandler:
    """Unmounts the workflow's drive once per process, logging unmount failures.

    The scoped mount in the workflow, interrupt unwinding and the atexit
    backstop all end up in cleanup(). An unmount that was interrupted does not
    count as done, so a later trigger tries again.
    """

    def __init__(self, mount_service: NetworkMountService, drive: str):
        self._mount_service = mount_service
        self._drive = drive
        self._done = False
        self._in_progress = False
        self._exit_hook_registered = False

    @property
    def done(self) -> bool:
        return self._done

    async def cleanup(self) -> None:
        if self._done:
            logging.debug(f"Cleanup for {self._drive} already ran")
            return
        if self._in_progress:
            logging.debug(f"Cleanup for {self._drive} already in progress")
            return

        self._in_progress = True
        try:
            try:
                if await self._mount_service.unmount(self._drive):
                    logging.info(f"[green]Cleanup:[/] released {self._drive}")
            except WorkflowError as e:
                logging.warning(f"Cleanup could not unmount {self._drive}: {e}")
            except Exception as e:
                logging.warning(f"Unexpected error while unmounting {self._drive}: {e}")
            # Cancellation and KeyboardInterrupt skip this, leaving the exit hook to retry
            self._done = True
        finally:
            self._in_progress = False

    def cleanup_blocking(self) -> None:
        """Synchronous entry point for atexit, when no event loop is running."""
        if self._done:
            return
        try:
            asyncio.run(self.cleanup())
        except RuntimeError as e:
            logging.warning(f"Cleanup for {self._drive} could not run at exit: {e}")

    def register_exit_hook(self) -> None:
        if not self._exit_hook_registered:
            atexit.register(self.cleanup_blocking)
            self._exit_hook_registered = True

    def unregister_exit_hook(self) -> None:
        if self._exit_hook_registered:
            atexit.unregister(self.cleanup_blocking)
            self._exit_hook_registered = False
