"""Processing steps run in parallel over the systems of a sheet.

A system step has a per-system body, plus optional prolog and epilog
actions run sequentially on the whole sheet before and after the systems
get processed. The scheduler runs the body of every target system as a
separate task on the shared worker pool and waits for all of them.

A failure in one system is logged and recorded, it never aborts the
other systems nor the step. Only an interruption of the wait itself
cancels the step, with no rollback of the systems already processed.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from concurrent.futures import Future, wait
from typing import Any

from glyph_omr.errors import StepCancelledError
from glyph_omr.executors import get_executor
from glyph_omr.models import SchedulerParams, StepResult
from glyph_omr.system import Sheet, System

logger = logging.getLogger(__name__)


class SystemStep(ABC):
    """Base class for any step working in parallel on the sheet systems.

    Attributes:
        name: Name of the step.
        description: A step description for the end user.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description

    @abstractmethod
    def do_system(self, system: System) -> Any:
        """Actually perform the step on the given system.

        Args:
            system: The system to process. No other task touches it meanwhile.

        Returns:
            A per-system result, recorded in the StepResult.
        """

    def do_prolog(self, systems: list[System], sheet: Sheet) -> None:
        """Do preliminary common work before the systems are processed in parallel."""

    def do_epilog(self, systems: list[System], sheet: Sheet, result: StepResult) -> None:
        """Do final processing once all systems have been processed."""

    def __str__(self) -> str:
        return self.name


class StepScheduler:
    """Run system steps over sheets.

    Attributes:
        params: Scheduler parameters.
        cancel_event: When set, the step currently waiting on its systems
            is cancelled.
    """

    def __init__(
        self,
        params: SchedulerParams | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.params = params if params is not None else SchedulerParams()
        self.cancel_event = cancel_event

    def run(
        self,
        step: SystemStep,
        systems: Iterable[System] | None,
        sheet: Sheet,
    ) -> StepResult:
        """Perform the step on the target systems of the sheet.

        Args:
            step: The step to perform.
            systems: Systems to process; None or empty means all systems.
            sheet: The sheet to process.

        Returns:
            The per-system results, with the ids of failed systems.

        Raises:
            StepCancelledError: If waiting on the systems got interrupted.
        """
        targets = list(systems) if systems is not None else []
        if not targets:
            targets = list(sheet.systems)
        logger.debug(f"{sheet.log_prefix}{step} on {len(targets)} system(s)")

        # Preliminary actions
        step.do_prolog(targets, sheet)

        # Processing system per system
        result = self._run_systems(step, targets, sheet)

        # Final actions
        step.do_epilog(targets, sheet, result)

        if result.failed:
            logger.info(
                f"{sheet.log_prefix}{step} failed on system(s) {result.failed}"
            )
        return result

    def _run_systems(
        self, step: SystemStep, systems: list[System], sheet: Sheet
    ) -> StepResult:
        executor = get_executor(self.params.max_workers)
        futures: dict[Future, System] = {
            executor.submit(self._process_system, step, system, sheet): system
            for system in systems
        }

        try:
            self._wait_all(set(futures))
        except (KeyboardInterrupt, StepCancelledError) as e:
            abandoned = sum(1 for future in futures if future.cancel())
            logger.warning(
                f"{sheet.log_prefix}{step} got interrupted, "
                f"{abandoned} system task(s) abandoned"
            )
            if isinstance(e, StepCancelledError):
                raise
            raise StepCancelledError(f"{step} interrupted") from e

        result = StepResult(step_name=step.name)
        for future, system in futures.items():
            succeeded, value = future.result()
            if succeeded:
                result.results[system.id] = value
            else:
                result.failed.append(system.id)
        return result

    def _wait_all(self, pending: set[Future]) -> None:
        while pending:
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise StepCancelledError("Step cancelled")
            _, pending = wait(pending, timeout=self.params.poll_interval)

    @staticmethod
    def _process_system(
        step: SystemStep, system: System, sheet: Sheet
    ) -> tuple[bool, Any]:
        try:
            logger.debug(f"{step} do_system {system.id_string()}")
            return True, step.do_system(system)
        except Exception:
            logger.warning(
                f"{sheet.log_prefix}Interrupt on {system.id_string()}", exc_info=True
            )
            return False, None


def run_step(
    step: SystemStep,
    systems: Iterable[System] | None,
    sheet: Sheet,
    params: SchedulerParams | None = None,
    cancel_event: threading.Event | None = None,
) -> StepResult:
    """Run a step on a sheet with a one-off scheduler.

    See ``StepScheduler.run``.
    """
    return StepScheduler(params, cancel_event).run(step, systems, sheet)
