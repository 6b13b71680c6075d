"""
Data Access Governance insight cmdlets of the SharePoint Online Management Shell.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from common.powershell import PowerShellClient, PowerShellError, ps_quote
from governance.exceptions import ReportProcessingError
from governance.models import ReportRecord, ReportRequest

logger = logging.getLogger("dag.governance.connectors.spo.insight_requests")


def build_list_command(request: ReportRequest) -> str:
    cmd = f"Get-SPODataAccessGovernanceInsight -ReportEntity {ps_quote(request.entity.value)}"
    if request.time_window is not None:
        cmd += f" -ReportType {ps_quote(request.time_window.value)}"
    if request.workload is not None:
        cmd += f" -Workload {ps_quote(request.workload.value)}"
    return cmd


def _as_items(data: Any) -> List[Dict[str, Any]]:
    if data is None:
        return []
    items = data if isinstance(data, list) else [data]
    for item in items:
        if not isinstance(item, dict):
            raise ReportProcessingError(f"Unexpected insight report payload: {item!r}")
    return items


class SPOInsightService:
    """List and export DAG insight reports through a connected PowerShell host."""

    def __init__(self, shell: PowerShellClient):
        self.shell = shell

    def list_reports(self, request: ReportRequest) -> List[ReportRecord]:
        """
        Returns the reports for one entity in the order the service lists them.

        Records that do not name their entity are attributed to the requested one.
        """
        logger.debug(f"Fetching insight reports for {request.entity.value}")
        try:
            data = self.shell.invoke(build_list_command(request))
        except PowerShellError as e:
            raise ReportProcessingError(f"Failed to list reports for {request.entity.value}: {e}")

        records = []
        for item in _as_items(data):
            payload = dict(item)
            if not payload.get("ReportEntity"):
                payload["ReportEntity"] = request.entity.value
            try:
                records.append(ReportRecord.model_validate(payload))
            except ValidationError as e:
                raise ReportProcessingError(f"Invalid insight report for {request.entity.value}: {e}")
        return records

    def export_report(self, report_id: str) -> None:
        """Starts the CSV export; the file appears in the host's working directory."""
        try:
            self.shell.invoke(f"Export-SPODataAccessGovernanceInsight -ReportID {ps_quote(report_id)}")
        except PowerShellError as e:
            raise ReportProcessingError(f"Failed to export report {report_id}: {e}")


_SERVICE: Optional[SPOInsightService] = None


def get_insight_service(shell: PowerShellClient) -> SPOInsightService:
    global _SERVICE
    if _SERVICE is None or _SERVICE.shell is not shell:
        _SERVICE = SPOInsightService(shell)
    return _SERVICE
