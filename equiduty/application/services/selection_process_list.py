"""Selection process list controller.

Lists the processes of one stable, optionally narrowed to one status.
Starting a load while another is in flight cancels the earlier one, so an
older response can never overwrite a newer stable or filter.
"""

from __future__ import annotations

import asyncio

from equiduty.application.ports.selection_process_api import (
    SelectionProcessApiProtocol,
)
from equiduty.application.services.base import LoggingMixin
from equiduty.application.services.observable import Observable
from equiduty.domain.models.selection_process import (
    SelectionProcessStatus,
    SelectionProcessSummary,
)


class SelectionProcessListController(Observable, LoggingMixin):
    """Controller for the selection process list view.

    Attributes:
        stable_id: Stable of the most recent load.
        status_filter: Status the most recent load was narrowed to, if any.
        processes: Summaries from the most recent completed load.
        is_loading: True while a load is in flight.
        error_message: Failure of the most recent load.
    """

    def __init__(self, api: SelectionProcessApiProtocol) -> None:
        self._api = api
        self._init_logger(component="selection_process_list")
        self._init_observable()

        self.stable_id: str | None = None
        self.status_filter: SelectionProcessStatus | None = None
        self.processes: list[SelectionProcessSummary] = []
        self.is_loading = False
        self.error_message: str | None = None
        self._load_task: asyncio.Task[None] | None = None

    @property
    def active_processes(self) -> list[SelectionProcessSummary]:
        return [p for p in self.processes if p.status is SelectionProcessStatus.ACTIVE]

    @property
    def processes_awaiting_me(self) -> list[SelectionProcessSummary]:
        """Active processes where it is the viewer's turn."""
        return [p for p in self.active_processes if p.is_current_turn]

    async def load(
        self, stable_id: str, status: SelectionProcessStatus | None = None
    ) -> None:
        """Load summaries for ``stable_id``, cancelling any earlier load.

        ``status`` narrows the list to one status; None lists all.
        """
        previous = self._load_task
        if previous is not None and not previous.done():
            self._log_operation("load", stable_id=stable_id).debug(
                "previous_load_cancelled", previous_stable_id=self.stable_id
            )
            previous.cancel()

        self.stable_id = stable_id
        self.status_filter = status
        task = asyncio.ensure_future(self._fetch(stable_id, status))
        self._load_task = task
        try:
            await task
        except asyncio.CancelledError:
            # Superseded by a newer load; the caller itself was not cancelled
            if task.cancelled() and self._load_task is not task:
                return
            raise

    async def refresh(self) -> None:
        if self.stable_id is not None:
            await self.load(self.stable_id, self.status_filter)

    async def _fetch(self, stable_id: str, status: SelectionProcessStatus | None) -> None:
        log = self._log_operation(
            "load",
            stable_id=stable_id,
            status=status.value if status is not None else None,
        )
        self.is_loading = True
        self.error_message = None
        self._publish()

        try:
            summaries = await self._api.list_processes(stable_id, status)
        except Exception as exc:
            log.error("process_list_load_failed", error=str(exc), exc_info=True)
            self.error_message = "Failed to load selection processes"
        else:
            self.processes = list(summaries)
            log.info("process_list_loaded", process_count=len(self.processes))
        self.is_loading = False
        self._publish()
