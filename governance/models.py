"""
Pydantic models for Data Access Governance (DAG) insight reports and run results.
"""
from collections import Counter
from enum import Enum
from typing import Any, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from governance.exceptions import ErrorKind

ALL_ENTITIES = "all"


class ReportEntity(str, Enum):
    EVERYONE_EXCEPT_EXTERNAL_USERS_AT_SITE = "EveryoneExceptExternalUsersAtSite"
    EVERYONE_EXCEPT_EXTERNAL_USERS_FOR_ITEMS = "EveryoneExceptExternalUsersForItems"
    SHARING_LINKS_ANYONE = "SharingLinks_Anyone"
    SHARING_LINKS_PEOPLE_IN_YOUR_ORG = "SharingLinks_PeopleInYourOrg"
    SHARING_LINKS_GUESTS = "SharingLinks_Guests"
    SENSITIVITY_LABEL_FOR_FILES = "SensitivityLabelForFiles"
    PERMISSIONED_USERS = "PermissionedUsers"


class TimeWindow(str, Enum):
    SNAPSHOT = "Snapshot"
    RECENT_ACTIVITY = "RecentActivity"


class Workload(str, Enum):
    SHAREPOINT = "SharePoint"
    ONEDRIVE_FOR_BUSINESS = "OneDriveForBusiness"


class ReportStatus(str, Enum):
    NOT_STARTED = "NotStarted"
    IN_QUEUE = "InQueue"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    @classmethod
    def classify(cls, raw: Any) -> "ReportStatus":
        """Map a service-reported status onto a bucket; anything unrecognized is UNKNOWN."""
        if raw is None:
            return cls.UNKNOWN
        value = str(raw).strip().lower()
        for member in cls:
            if member is not cls.UNKNOWN and member.value.lower() == value:
                return member
        return cls.UNKNOWN


def resolve_entities(values: Union[str, Iterable[str]]) -> List[ReportEntity]:
    """
    Resolve entity names to ReportEntity members.

    Accepts a comma separated string or an iterable of names. "all" expands to
    every entity in declaration order. Duplicates are dropped, order is kept.

    Raises:
        ValueError: for an empty selection or an unknown entity name
    """
    if isinstance(values, str):
        values = values.split(",")
    names = [v.strip() for v in values if v and v.strip()]
    if not names:
        raise ValueError("At least one report entity must be selected")

    if any(name.lower() == ALL_ENTITIES for name in names):
        return list(ReportEntity)

    by_value = {e.value.lower(): e for e in ReportEntity}
    resolved: List[ReportEntity] = []
    for name in names:
        entity = by_value.get(name.lower())
        if entity is None:
            valid = ", ".join(e.value for e in ReportEntity)
            raise ValueError(f"Unknown report entity '{name}'. Valid values: {valid}, {ALL_ENTITIES}")
        if entity not in resolved:
            resolved.append(entity)
    return resolved


class ReportRequest(BaseModel):
    """One list request against the insight service."""
    model_config = ConfigDict(frozen=True)

    entity: ReportEntity
    time_window: Optional[TimeWindow] = None
    workload: Optional[Workload] = None


class ReportRecord(BaseModel):
    """
    A DAG insight report as returned by Get-SPODataAccessGovernanceInsight.
    Read-only; fields the service adds later are kept as extras.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    report_id: str = Field(..., alias="ReportId", description="Identifier of the report generation job")
    name: Optional[str] = Field(None, alias="Name")
    report_entity: Optional[str] = Field(None, alias="ReportEntity")
    status: Optional[str] = Field(None, alias="Status", description="Raw status reported by the service")
    workload: Optional[str] = Field(None, alias="Workload")
    report_type: Optional[str] = Field(None, alias="ReportType")
    triggered_date_time: Optional[str] = Field(None, alias="TriggeredDateTime")
    created_date_time: Optional[str] = Field(None, alias="CreatedDateTime")
    report_start_date_time: Optional[str] = Field(None, alias="ReportStartDateTime")
    report_end_date_time: Optional[str] = Field(None, alias="ReportEndDateTime")
    sites_found: Optional[Union[int, str]] = Field(None, alias="SitesFound")
    privacy_filter: Optional[str] = Field(None, alias="PrivacyFilter")
    sensitivity_label_filter: Optional[str] = Field(None, alias="SensitivityLabelFilter")
    templates: Optional[Any] = Field(None, alias="Templates")

    @field_validator(
        "report_id", "report_entity", "status", "workload", "report_type",
        "triggered_date_time", "created_date_time", "report_start_date_time",
        "report_end_date_time", "privacy_filter", "sensitivity_label_filter",
        mode="before",
    )
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        return None if value is None else str(value)

    @property
    def bucket(self) -> ReportStatus:
        return ReportStatus.classify(self.status)


class StatusTally(BaseModel):
    """Count of records per status bucket for one run."""
    model_config = ConfigDict(frozen=True)

    not_started: int = 0
    in_queue: int = 0
    in_progress: int = 0
    completed: int = 0
    failed: int = 0
    unknown: int = 0

    @classmethod
    def from_statuses(cls, statuses: Iterable[ReportStatus]) -> "StatusTally":
        counts = Counter(statuses)
        return cls(
            not_started=counts[ReportStatus.NOT_STARTED],
            in_queue=counts[ReportStatus.IN_QUEUE],
            in_progress=counts[ReportStatus.IN_PROGRESS],
            completed=counts[ReportStatus.COMPLETED],
            failed=counts[ReportStatus.FAILED],
            unknown=counts[ReportStatus.UNKNOWN],
        )

    def count(self, status: ReportStatus) -> int:
        return {
            ReportStatus.NOT_STARTED: self.not_started,
            ReportStatus.IN_QUEUE: self.in_queue,
            ReportStatus.IN_PROGRESS: self.in_progress,
            ReportStatus.COMPLETED: self.completed,
            ReportStatus.FAILED: self.failed,
            ReportStatus.UNKNOWN: self.unknown,
        }[status]

    @property
    def total(self) -> int:
        return sum(self.count(status) for status in ReportStatus)

    def lines(self) -> List[str]:
        return [
            f"Reports not started: {self.not_started}",
            f"Reports in queue: {self.in_queue}",
            f"Reports in progress: {self.in_progress}",
            f"Reports completed: {self.completed}",
            f"Reports failed: {self.failed}",
            f"Reports with unknown status: {self.unknown}",
        ]


class ExportOutcome(BaseModel):
    """What happened to one completed report when exporting was enabled."""
    report_id: str
    entity: str
    kind: Literal["renamed", "not_found", "timeout", "export_failed", "move_failed"]
    path: Optional[str] = None
    message: Optional[str] = None


class ReconcileResult(BaseModel):
    tally: StatusTally = Field(default_factory=StatusTally)
    records: List[ReportRecord] = Field(default_factory=list)
    exports: List[ExportOutcome] = Field(default_factory=list)
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None
