"""
DAG insight report reconciliation.

Fetches the insight reports of the selected entities, classifies each one by
status, optionally exports the completed ones, and summarizes the run.
"""
import logging
import os
import time
from typing import Callable, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field

from governance.exceptions import (
    DAGReportError,
    ErrorKind,
    ExportFileNotFound,
    ExportFileTimeout,
    ReportProcessingError,
)
from governance.export_files import claim_export_file, wait_for_export_file
from governance.models import (
    ExportOutcome,
    ReconcileResult,
    ReportEntity,
    ReportRecord,
    ReportRequest,
    ReportStatus,
    StatusTally,
    TimeWindow,
    Workload,
)
from config.config import DAG_LOGGING_DIRECTORY

logger = logging.getLogger("dag.governance.reconciler")

STATUS_MESSAGES: Dict[ReportStatus, str] = {
    ReportStatus.NOT_STARTED: "Report {id} ({entity}) has not started yet.",
    ReportStatus.IN_QUEUE: "Report {id} ({entity}) is in queue.",
    ReportStatus.IN_PROGRESS: "Report {id} ({entity}) is still in progress.",
    ReportStatus.COMPLETED: "Report {id} ({entity}) has completed.",
    ReportStatus.FAILED: "Report {id} ({entity}) has failed.",
    ReportStatus.UNKNOWN: "Report {id} ({entity}) has an unknown status: {status}.",
}

TABLE_COLUMNS = (
    ("Entity", "report_entity"),
    ("ReportId", "report_id"),
    ("Status", "status"),
    ("Workload", "workload"),
    ("Created", "created_date_time"),
)


class InsightService(Protocol):
    def list_reports(self, request: ReportRequest) -> List[ReportRecord]: ...

    def export_report(self, report_id: str) -> None: ...


class ReconcileOptions(BaseModel):
    entities: List[ReportEntity] = Field(default_factory=lambda: list(ReportEntity), min_length=1)
    export_reports: bool = False
    seconds_to_wait: int = Field(30, ge=1, le=300, description="Deadline for an exported file to appear")
    logging_directory: str = DAG_LOGGING_DIRECTORY
    export_workdir: str = Field(default_factory=os.getcwd, description="Where the export cmdlet writes files")
    time_window: Optional[TimeWindow] = None
    workload: Optional[Workload] = None
    tabular: bool = True


def status_line(record: ReportRecord) -> str:
    return STATUS_MESSAGES[record.bucket].format(
        id=record.report_id, entity=record.report_entity, status=record.status
    )


def format_table(records: List[ReportRecord]) -> List[str]:
    rows = [[str(getattr(r, attr) or "") for _, attr in TABLE_COLUMNS] for r in records]
    headers = [title for title, _ in TABLE_COLUMNS]
    widths = [max(len(cell) for cell in column) for column in zip(headers, *rows)]

    def fmt(cells):
        return "  ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    return [fmt(headers), fmt(["-" * w for w in widths])] + [fmt(row) for row in rows]


def format_raw(records: List[ReportRecord]) -> List[str]:
    lines = []
    for record in records:
        for key, value in record.model_dump(by_alias=True, exclude_none=True).items():
            lines.append(f"{key}: {value}")
        lines.append("")
    return lines


class ReportReconciler:
    """Runs one sequential pass over the insight reports of the selected entities."""

    def __init__(
        self,
        service: InsightService,
        options: ReconcileOptions,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.service = service
        self.options = options
        self._sleep = sleep
        self._clock = clock

    def fetch(self) -> List[ReportRecord]:
        """All records of all selected entities: entity order, then service order."""
        records: List[ReportRecord] = []
        for entity in self.options.entities:
            request = ReportRequest(
                entity=entity,
                time_window=self.options.time_window,
                workload=self.options.workload,
            )
            fetched = self.service.list_reports(request)
            logger.info(f"Found {len(fetched)} report(s) for {entity.value}")
            records.extend(fetched)
        return records

    def reconcile(self) -> ReconcileResult:
        """
        Classifies every fetched record once and exports completed ones when enabled.

        Failures do not propagate: the result carries the error kind and message,
        and the summary is emitted either way.
        """
        classified: List[ReportRecord] = []
        exports: List[ExportOutcome] = []
        error_kind: Optional[ErrorKind] = None
        error_message: Optional[str] = None

        entity_names = ", ".join(e.value for e in self.options.entities)
        logger.info(f"Checking DAG insight reports for: {entity_names}")

        try:
            records = self.fetch()
            self._render(records)
            for record in records:
                classified.append(record)
                if record.bucket in (ReportStatus.FAILED, ReportStatus.UNKNOWN):
                    logger.warning(status_line(record))
                else:
                    logger.info(status_line(record))

                if record.bucket is ReportStatus.COMPLETED and self.options.export_reports:
                    exports.append(self._export(record))
        except DAGReportError as e:
            logger.error(f"Error processing DAG reports: {e}")
            error_kind, error_message = e.kind, str(e)
        except Exception as e:
            logger.exception("Unexpected error while processing DAG reports.")
            error_kind, error_message = ErrorKind.PROCESSING, str(e)

        tally = StatusTally.from_statuses(r.bucket for r in classified)
        for line in tally.lines():
            logger.info(line)
        logger.info("Script completed.")

        return ReconcileResult(
            tally=tally,
            records=classified,
            exports=exports,
            error_kind=error_kind,
            error_message=error_message,
        )

    def _render(self, records: List[ReportRecord]) -> None:
        if not records:
            logger.info("No DAG insight reports found.")
            return
        lines = format_table(records) if self.options.tabular else format_raw(records)
        for line in lines:
            logger.info(line)

    def _export(self, record: ReportRecord) -> ExportOutcome:
        report_id = record.report_id
        entity = record.report_entity or "Unknown"
        logger.info(f"Exporting report {report_id} ({entity})")

        try:
            self.service.export_report(report_id)
        except ReportProcessingError as e:
            logger.error(f"Export failed for report {report_id}: {e}")
            return ExportOutcome(report_id=report_id, entity=entity, kind="export_failed", message=str(e))

        try:
            source = wait_for_export_file(
                self.options.export_workdir,
                report_id,
                self.options.seconds_to_wait,
                sleep=self._sleep,
                clock=self._clock,
            )
        except ExportFileNotFound as e:
            logger.warning(f"Exported file not found for report {report_id}: {e}")
            return ExportOutcome(report_id=report_id, entity=entity, kind="not_found", message=str(e))
        except ExportFileTimeout as e:
            logger.warning(f"Timed out waiting for exported file of report {report_id}: {e}")
            return ExportOutcome(report_id=report_id, entity=entity, kind="timeout", message=str(e))
        except OSError as e:
            logger.warning(f"Could not read export directory for report {report_id}: {e}")
            return ExportOutcome(report_id=report_id, entity=entity, kind="move_failed", message=str(e))

        try:
            target = claim_export_file(source, entity, report_id, self.options.logging_directory)
        except OSError as e:
            logger.warning(f"Could not move exported file of report {report_id}: {e}")
            return ExportOutcome(report_id=report_id, entity=entity, kind="move_failed", message=str(e))
        logger.info(f"Renamed exported report {report_id} to {target.name}")
        return ExportOutcome(report_id=report_id, entity=entity, kind="renamed", path=str(target))
