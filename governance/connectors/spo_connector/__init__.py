"""
SharePoint Online connector package.

Session lifecycle for the SharePoint Online Management Shell and the Data
Access Governance insight cmdlets.
"""
from governance.connectors.spo_connector.session import (
    SPOSession,
    derive_admin_url,
    is_elevated,
)
from governance.connectors.spo_connector.api.insight_requests import (
    SPOInsightService,
    build_list_command,
    get_insight_service,
)

__all__ = [
    # Session
    "SPOSession",
    "derive_admin_url",
    "is_elevated",
    # Insight reports
    "SPOInsightService",
    "build_list_command",
    "get_insight_service",
]
