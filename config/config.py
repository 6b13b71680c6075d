
import os
from dotenv import load_dotenv

load_dotenv()  # Automatically loads from `.env` or `.env.local`


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


## Tenant Settings
SPO_TENANT_DOMAIN = os.getenv("SPO_TENANT_DOMAIN", "")
# SPO_ADMIN_URL overrides the URL derived from SPO_TENANT_DOMAIN
SPO_ADMIN_URL = os.getenv("SPO_ADMIN_URL", "")
SPO_MODULE_NAME = os.getenv("SPO_MODULE_NAME", "Microsoft.Online.SharePoint.PowerShell")
SPO_PROBE_ENDPOINT = _env_flag("SPO_PROBE_ENDPOINT", "true")
SPO_PROBE_TIMEOUT = float(os.getenv("SPO_PROBE_TIMEOUT", "15"))

## PowerShell Host
POWERSHELL_EXE = os.getenv("POWERSHELL_EXE", "pwsh")

## Report Settings
# Comma separated entity names, or "all"
DAG_REPORT_ENTITIES = os.getenv("DAG_REPORT_ENTITIES", "all")
DAG_EXPORT_REPORTS = _env_flag("DAG_EXPORT_REPORTS", "false")
DAG_SECONDS_TO_WAIT = int(os.getenv("DAG_SECONDS_TO_WAIT", "30"))
DAG_DISCONNECT = _env_flag("DAG_DISCONNECT", "false")
DAG_TABULAR_OUTPUT = _env_flag("DAG_TABULAR_OUTPUT", "true")
DAG_EXPORT_WORKDIR = os.getenv("DAG_EXPORT_WORKDIR", "")

## Logging
DAG_LOGGING_DIRECTORY = os.getenv("DAG_LOGGING_DIRECTORY", os.path.join(".", "DAG_Logs"))
DAG_LOGGING_FILENAME = os.getenv("DAG_LOGGING_FILENAME", "DAGReports.log")
LOGGING_LEVEL = os.getenv("LOGGING_LEVEL", "INFO").upper()
LOG_SINKS = [s.strip().lower() for s in os.getenv("LOG_SINKS", "console,file").split(",") if s.strip()]
