#!/usr/bin/env python3
"""
DAG insight report job.

Connects to the SharePoint Online admin service, reports the status of the
Data Access Governance insight reports of the selected entities and, with
--export, exports completed reports into the logging directory.

Usage:
    dag-reports --tenant contoso
    dag-reports --tenant contoso --entities SharingLinks_Anyone,SharingLinks_Guests --export --seconds-to-wait 60
    python -m governance.main --tenant contoso --raw --disconnect
"""
import argparse
import logging
import os
import sys
from typing import List, Optional

from common.powershell import PowerShellClient
from config.config import (
    DAG_DISCONNECT,
    DAG_EXPORT_REPORTS,
    DAG_EXPORT_WORKDIR,
    DAG_LOGGING_DIRECTORY,
    DAG_LOGGING_FILENAME,
    DAG_REPORT_ENTITIES,
    DAG_SECONDS_TO_WAIT,
    DAG_TABULAR_OUTPUT,
    POWERSHELL_EXE,
    SPO_ADMIN_URL,
    SPO_PROBE_ENDPOINT,
    SPO_TENANT_DOMAIN,
)
from config.logging_config import setup_logging
from governance.connectors.spo_connector import SPOSession, derive_admin_url, get_insight_service
from governance.exceptions import DAGReportError, ErrorKind
from governance.models import TimeWindow, Workload, resolve_entities
from governance.reconciler import ReconcileOptions, ReportReconciler

logger = logging.getLogger("dag.governance.main")

EXIT_OK = 0
EXIT_CODES = {
    ErrorKind.PROCESSING: 1,
    ErrorKind.EXPORT_NOT_FOUND: 1,
    ErrorKind.EXPORT_TIMEOUT: 1,
    ErrorKind.PRIVILEGE: 3,
    ErrorKind.PREREQUISITE: 4,
    ErrorKind.CONNECTION: 5,
}


def seconds_to_wait(value: str) -> int:
    try:
        seconds = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value}")
    if not 1 <= seconds <= 300:
        raise argparse.ArgumentTypeError("must be between 1 and 300")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dag-reports",
        description="Check SharePoint Data Access Governance insight reports and export completed ones.",
    )
    parser.add_argument("--tenant", default=SPO_TENANT_DOMAIN,
                        help="Tenant domain, e.g. contoso or contoso.onmicrosoft.com")
    parser.add_argument("--admin-url", default=SPO_ADMIN_URL,
                        help="SharePoint admin URL (default: derived from --tenant)")
    parser.add_argument("--entities", default=DAG_REPORT_ENTITIES,
                        help="Comma separated report entities, or 'all'")
    parser.add_argument("--export", action=argparse.BooleanOptionalAction, default=DAG_EXPORT_REPORTS,
                        help="Export completed reports to CSV")
    # String default so the environment value is range-checked by the type function too
    parser.add_argument("--seconds-to-wait", type=seconds_to_wait, default=str(DAG_SECONDS_TO_WAIT),
                        help="How long to wait for an exported file to appear (1-300)")
    parser.add_argument("--logging-directory", default=DAG_LOGGING_DIRECTORY)
    parser.add_argument("--logging-filename", default=DAG_LOGGING_FILENAME)
    parser.add_argument("--export-workdir", default=DAG_EXPORT_WORKDIR or None,
                        help="Working directory of the export cmdlet (default: current directory)")
    parser.add_argument("--disconnect", action=argparse.BooleanOptionalAction, default=DAG_DISCONNECT,
                        help="Send Disconnect-SPOService when done. The login never outlives this run: "
                             "it belongs to the PowerShell process, which is always closed at exit")
    parser.add_argument("--tabular", action=argparse.BooleanOptionalAction, default=DAG_TABULAR_OUTPUT,
                        help="Print reports as a table (--no-tabular prints every field)")
    parser.add_argument("--raw", dest="tabular", action="store_false", help="Same as --no-tabular")
    parser.add_argument("--report-type", choices=[t.value for t in TimeWindow])
    parser.add_argument("--workload", choices=[w.value for w in Workload])
    parser.add_argument("--install-module", action="store_true",
                        help="Install the SharePoint Online Management Shell when missing (needs elevation)")
    parser.add_argument("--no-probe", dest="probe", action="store_false", default=SPO_PROBE_ENDPOINT,
                        help="Skip the HTTPS reachability check of the admin endpoint")
    parser.add_argument("--powershell", default=POWERSHELL_EXE, help="PowerShell executable")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.tenant and not args.admin_url:
        parser.error("--tenant is required (or set SPO_TENANT_DOMAIN)")
    try:
        entities = resolve_entities(args.entities)
        admin_url = derive_admin_url(args.admin_url or args.tenant)
    except ValueError as e:
        parser.error(str(e))

    options = ReconcileOptions(
        entities=entities,
        export_reports=args.export,
        seconds_to_wait=args.seconds_to_wait,
        logging_directory=args.logging_directory,
        export_workdir=args.export_workdir or os.getcwd(),
        time_window=args.report_type,
        workload=args.workload,
        tabular=args.tabular,
    )

    setup_logging(args.logging_directory, args.logging_filename)

    shell = PowerShellClient(executable=args.powershell, cwd=options.export_workdir)
    session = SPOSession(shell, probe_endpoint=args.probe)
    try:
        try:
            session.ensure_prerequisites(install_missing=args.install_module)
            session.ensure_connected(admin_url)
        except DAGReportError as e:
            logger.error(str(e))
            return EXIT_CODES[e.kind]

        result = ReportReconciler(get_insight_service(shell), options).reconcile()
        if not result.ok:
            return EXIT_CODES[result.error_kind]
        return EXIT_OK
    finally:
        if args.disconnect:
            session.disconnect()
        shell.close()


if __name__ == "__main__":
    sys.exit(main())
