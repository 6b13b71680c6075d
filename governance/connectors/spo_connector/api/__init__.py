from governance.connectors.spo_connector.api.insight_requests import (
    SPOInsightService,
    build_list_command,
    get_insight_service,
)

__all__ = [
    "SPOInsightService",
    "build_list_command",
    "get_insight_service",
]
