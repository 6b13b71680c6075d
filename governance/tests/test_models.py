import pytest

from governance.models import (
    ReportEntity,
    ReportRecord,
    ReportStatus,
    StatusTally,
    resolve_entities,
)


class TestResolveEntities:

    def test_all_expands_to_every_entity_in_order(self):
        assert resolve_entities("all") == list(ReportEntity)
        assert resolve_entities(["ALL"]) == list(ReportEntity)
        assert len(resolve_entities("all")) == 7

    def test_names_keep_order_and_drop_duplicates(self):
        resolved = resolve_entities("SharingLinks_Guests, sharinglinks_anyone,SharingLinks_Guests")
        assert resolved == [ReportEntity.SHARING_LINKS_GUESTS, ReportEntity.SHARING_LINKS_ANYONE]

    def test_unknown_entity_is_rejected(self):
        with pytest.raises(ValueError, match="Unknown report entity 'SharingLinks_Everyone'"):
            resolve_entities(["SharingLinks_Everyone"])

    def test_empty_selection_is_rejected(self):
        with pytest.raises(ValueError):
            resolve_entities(" , ")


class TestReportStatus:

    @pytest.mark.parametrize("raw, expected", [
        ("NotStarted", ReportStatus.NOT_STARTED),
        ("InQueue", ReportStatus.IN_QUEUE),
        ("InProgress", ReportStatus.IN_PROGRESS),
        (" completed ", ReportStatus.COMPLETED),
        ("Failed", ReportStatus.FAILED),
        ("Archived", ReportStatus.UNKNOWN),
        ("Unknown", ReportStatus.UNKNOWN),
        (None, ReportStatus.UNKNOWN),
        (3, ReportStatus.UNKNOWN),
    ])
    def test_classify(self, raw, expected):
        assert ReportStatus.classify(raw) is expected


class TestReportRecord:

    def test_parses_service_payload(self):
        record = ReportRecord.model_validate({
            "ReportId": "0b1f6c9e-1",
            "Name": "Anyone links snapshot",
            "ReportEntity": "SharingLinks_Anyone",
            "Status": "Completed",
            "Workload": "SharePoint",
            "ReportType": "Snapshot",
            "CreatedDateTime": "2026-10-01T08:00:00Z",
            "SitesFound": 42,
            "Templates": ["Team site", "Communication site"],
            "CountOfUsersMoreThan": 10,
        })

        assert record.report_id == "0b1f6c9e-1"
        assert record.bucket is ReportStatus.COMPLETED
        assert record.sites_found == 42
        assert record.model_extra == {"CountOfUsersMoreThan": 10}

    def test_non_string_values_are_stringified(self):
        record = ReportRecord.model_validate({"ReportId": 17, "Status": 3})
        assert record.report_id == "17"
        assert record.status == "3"
        assert record.bucket is ReportStatus.UNKNOWN

    def test_records_are_read_only(self):
        record = ReportRecord(ReportId="r1", Status="Failed")
        with pytest.raises(Exception):
            record.status = "Completed"


class TestStatusTally:

    def test_from_statuses(self):
        tally = StatusTally.from_statuses([
            ReportStatus.COMPLETED, ReportStatus.COMPLETED, ReportStatus.FAILED, ReportStatus.UNKNOWN,
        ])
        assert tally.completed == 2
        assert tally.failed == 1
        assert tally.unknown == 1
        assert tally.total == 4

    def test_lines_cover_every_bucket(self):
        lines = StatusTally(in_queue=3).lines()
        assert len(lines) == 6
        assert "Reports in queue: 3" in lines
        assert "Reports not started: 0" in lines
