import pytest

from common.powershell import PowerShellCommandError
from governance.connectors.spo_connector.api.insight_requests import SPOInsightService, build_list_command
from governance.connectors.spo_connector.tests.shells import ScriptedShell
from governance.exceptions import ReportProcessingError
from governance.models import ReportEntity, ReportRequest, ReportStatus, TimeWindow, Workload

GET = "Get-SPODataAccessGovernanceInsight"


def test_build_list_command():
    request = ReportRequest(entity=ReportEntity.SHARING_LINKS_ANYONE)
    assert build_list_command(request) == "Get-SPODataAccessGovernanceInsight -ReportEntity 'SharingLinks_Anyone'"

    request = ReportRequest(
        entity=ReportEntity.PERMISSIONED_USERS,
        time_window=TimeWindow.RECENT_ACTIVITY,
        workload=Workload.ONEDRIVE_FOR_BUSINESS,
    )
    assert build_list_command(request) == (
        "Get-SPODataAccessGovernanceInsight -ReportEntity 'PermissionedUsers'"
        " -ReportType 'RecentActivity' -Workload 'OneDriveForBusiness'"
    )


class TestListReports:

    request = ReportRequest(entity=ReportEntity.SHARING_LINKS_GUESTS)

    def test_single_object_becomes_list(self):
        shell = ScriptedShell({GET: {"ReportId": "r1", "ReportEntity": "SharingLinks_Guests", "Status": "InQueue"}})
        [record] = SPOInsightService(shell).list_reports(self.request)

        assert record.report_id == "r1"
        assert record.bucket is ReportStatus.IN_QUEUE

    def test_no_reports(self):
        assert SPOInsightService(ScriptedShell({GET: None})).list_reports(self.request) == []

    def test_service_order_is_kept_and_entity_filled_in(self):
        shell = ScriptedShell({GET: [{"ReportId": "r2", "Status": "Completed"}, {"ReportId": "r1", "Status": "Failed"}]})
        records = SPOInsightService(shell).list_reports(self.request)

        assert [r.report_id for r in records] == ["r2", "r1"]
        assert {r.report_entity for r in records} == {"SharingLinks_Guests"}

    def test_command_error(self):
        shell = ScriptedShell({GET: PowerShellCommandError(GET, "You must call Connect-SPOService first")})
        with pytest.raises(ReportProcessingError, match="Connect-SPOService"):
            SPOInsightService(shell).list_reports(self.request)

    @pytest.mark.parametrize("payload", [["not a report"], [{"Status": "Completed"}]])
    def test_malformed_payload(self, payload):
        with pytest.raises(ReportProcessingError):
            SPOInsightService(ScriptedShell({GET: payload})).list_reports(self.request)


def test_export_report():
    shell = ScriptedShell()
    SPOInsightService(shell).export_report("abc'123")
    assert shell.commands == ["Export-SPODataAccessGovernanceInsight -ReportID 'abc''123'"]


def test_export_report_failure():
    shell = ScriptedShell({"Export-SPO": PowerShellCommandError("Export-SPO", "Report not ready")})
    with pytest.raises(ReportProcessingError, match="abc123"):
        SPOInsightService(shell).export_report("abc123")
