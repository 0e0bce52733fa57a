"""Shrink Workflow - mount, fetch, shrink, convert, always unmount."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from rich.markup import escape

from .config import Settings
from .core.exceptions import WorkflowError
from .models import MountInfo, StepResult, StepStatus, WorkflowReport
from .services.cleanup_handler import CleanupHandler
from .services.network_mount import NetworkMountService
from .services.process_runner import ProcessRunner
from .services.report_converter import ReportConverter
from .services.repository_fetcher import RepositoryFetcher
from .services.shrink_runner import ShrinkRunner

STEP_TITLES = {
    "mount": "Mount network share",
    "fetch": "Fetch shrink tool",
    "shrink": "Run shrink tool",
    "convert": "Convert report to workbook",
}

FAILURE_EXIT_CODE = 1
INTERRUPTED_EXIT_CODE = 130

_STATUS_STYLE = {
    StepStatus.SUCCEEDED: "green",
    StepStatus.FAILED: "bold red",
    StepStatus.SKIPPED: "yellow",
    StepStatus.PENDING: "dim",
    StepStatus.RUNNING: "cyan",
}


class ShrinkWorkflow:
    """Runs the maintenance steps in order and reports per-step outcome."""

    def __init__(
        self,
        settings: Settings,
        runner: Optional[ProcessRunner] = None,
        mount_service: Optional[NetworkMountService] = None,
        fetcher: Optional[RepositoryFetcher] = None,
        shrink_runner: Optional[ShrinkRunner] = None,
        converter: Optional[ReportConverter] = None,
        cleanup_handler: Optional[CleanupHandler] = None,
    ):
        runner = runner or ProcessRunner()
        self._settings = settings
        self.mount_service = mount_service or NetworkMountService(settings, runner=runner)
        self._fetcher = fetcher or RepositoryFetcher(settings, runner=runner)
        self._shrink_runner = shrink_runner or ShrinkRunner(settings, runner=runner)
        self._converter = converter or ReportConverter(settings)
        self.cleanup_handler = cleanup_handler or CleanupHandler(
            self.mount_service, settings.drive_letter
        )

    @asynccontextmanager
    async def mounted_share(self, report: WorkflowReport) -> AsyncIterator[MountInfo]:
        """Hold the share mounted for the body; release it on every way out."""
        s = self._settings
        try:
            info = await self._run_step(
                report,
                "mount",
                lambda: self.mount_service.ensure_mounted(s.drive_letter, s.network_share_path),
                lambda i: f"{i.drive} -> {i.remote_path} ({i.action.value.lower()})",
            )
            yield info
        finally:
            await self.cleanup_handler.cleanup()

    async def run(self) -> WorkflowReport:
        s = self._settings
        report = WorkflowReport(steps=[StepResult(name=name) for name in STEP_TITLES])

        try:
            async with self.mounted_share(report):
                await self._run_step(
                    report,
                    "fetch",
                    lambda: self._fetcher.ensure_repository(s.repository_url, s.repository_directory),
                    lambda action: f"{action.value.lower()} {s.repository_directory}",
                )
                shrink_result = await self._run_step(
                    report,
                    "shrink",
                    lambda: self._shrink_runner.run_shrink(
                        s.shrink_script_path, s.shrink_target_path, s.shrink_log_path
                    ),
                    lambda r: f"exit code 0 after {r.duration_seconds:.1f}s",
                )
                await self._run_step(
                    report,
                    "convert",
                    lambda: self._converter.convert_to_workbook(shrink_result.log_path, s.workbook_path),
                    lambda info: f"{info.rows} rows -> {info.path}",
                )
            report.exit_code = 0
        except WorkflowError:
            report.exit_code = FAILURE_EXIT_CODE
        except (asyncio.CancelledError, KeyboardInterrupt):
            report.interrupted = True
            report.exit_code = INTERRUPTED_EXIT_CODE
            raise
        except Exception:
            report.exit_code = FAILURE_EXIT_CODE
            raise
        finally:
            self._finish_report(report)

        return report

    async def _run_step(
        self,
        report: WorkflowReport,
        name: str,
        action: Callable[[], Awaitable[Any]],
        describe: Callable[[Any], str],
    ) -> Any:
        step = report.get_step(name)
        step.status = StepStatus.RUNNING
        logging.info(f"[bold cyan]>>[/] {STEP_TITLES[name]}")
        started = time.monotonic()

        try:
            result = await action()
        except WorkflowError as e:
            step.status = StepStatus.FAILED
            step.message = str(e)
            step.duration_seconds = time.monotonic() - started
            logging.error(f"[bold red]{STEP_TITLES[name]} failed:[/] {escape(str(e))}")
            raise
        except (asyncio.CancelledError, KeyboardInterrupt):
            step.status = StepStatus.FAILED
            step.message = "interrupted"
            step.duration_seconds = time.monotonic() - started
            logging.error(f"[bold red]{STEP_TITLES[name]} interrupted[/]")
            raise
        except Exception as e:
            step.status = StepStatus.FAILED
            step.message = f"unexpected error: {e}"
            step.duration_seconds = time.monotonic() - started
            logging.exception(f"{STEP_TITLES[name]} crashed")
            raise

        step.status = StepStatus.SUCCEEDED
        step.message = describe(result)
        step.duration_seconds = time.monotonic() - started
        logging.info(f"[bold green]{STEP_TITLES[name]} done:[/] {escape(step.message)}")
        return result

    @staticmethod
    def _finish_report(report: WorkflowReport) -> None:
        for step in report.steps:
            if step.status in (StepStatus.PENDING, StepStatus.RUNNING):
                step.status = StepStatus.SKIPPED

        logging.info("[bold]Step summary[/]")
        for step in report.steps:
            style = _STATUS_STYLE[step.status]
            detail = f" - {escape(step.message)}" if step.message else ""
            logging.info(
                f"  [{style}]{step.status.value:<9}[/] {STEP_TITLES[step.name]}"
                f" ({step.duration_seconds:.1f}s){detail}"
            )

        if report.interrupted:
            logging.warning("[bold yellow]Workflow interrupted[/]")
        elif report.exit_code == 0:
            logging.info("[bold green]Workflow completed successfully[/]")
        else:
            logging.error(f"[bold red]Workflow failed[/] (exit code {report.exit_code})")
