import ctypes
import logging
import os
import re
from typing import Optional

import requests

from common.powershell import PowerShellClient, PowerShellError, ps_quote
from config.config import SPO_MODULE_NAME, SPO_PROBE_ENDPOINT, SPO_PROBE_TIMEOUT
from governance.exceptions import ConnectionFailure, PrerequisiteError, PrivilegeError

logger = logging.getLogger("dag.governance.connectors.spo.session")

_TENANT_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")


def derive_admin_url(tenant_domain: str) -> str:
    """
    Builds the SharePoint admin center URL for a tenant.

    Accepts "contoso", "contoso.onmicrosoft.com", "contoso.sharepoint.com",
    "contoso-my.sharepoint.com" or an existing admin URL; all of them give
    "https://contoso-admin.sharepoint.com".
    """
    value = (tenant_domain or "").strip().lower()
    if not value:
        raise ValueError("A tenant domain is required")

    host = re.sub(r"^https?://", "", value).split("/")[0]
    name = host.split(".")[0]
    for suffix in ("-admin", "-my"):
        if name.endswith(suffix):
            name = name[: -len(suffix)]

    if not _TENANT_NAME_RE.match(name):
        raise ValueError(f"Invalid tenant domain: {tenant_domain}")
    return f"https://{name}-admin.sharepoint.com"


def is_elevated() -> bool:
    """True when running as Administrator (Windows) or root (elsewhere)."""
    if os.name == "nt":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0


class SPOSession:
    """Prerequisites and login for the SharePoint Online Management Shell."""

    def __init__(
        self,
        shell: PowerShellClient,
        module_name: str = SPO_MODULE_NAME,
        probe_endpoint: bool = SPO_PROBE_ENDPOINT,
        probe_timeout: float = SPO_PROBE_TIMEOUT,
    ):
        self.shell = shell
        self.module_name = module_name
        self.probe_endpoint = probe_endpoint
        self.probe_timeout = probe_timeout
        self.admin_url: Optional[str] = None
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def ensure_prerequisites(self, install_missing: bool = False) -> None:
        """
        Makes sure the management shell module is installed and imported.

        Raises:
            PrivilegeError: the module has to be installed and the process is not elevated
            PrerequisiteError: the module is missing or cannot be loaded
        """
        module = ps_quote(self.module_name)
        try:
            available = self.shell.invoke(f"@(Get-Module -ListAvailable -Name {module}).Count")
        except PowerShellError as e:
            raise PrerequisiteError(f"Cannot query PowerShell modules: {e}")

        if not available:
            if not install_missing:
                raise PrerequisiteError(
                    f"PowerShell module {self.module_name} is not installed. "
                    "Install it or rerun with --install-module."
                )
            if not is_elevated():
                raise PrivilegeError(f"Installing {self.module_name} requires an elevated session")
            logger.info(f"Installing PowerShell module {self.module_name}")
            try:
                self.shell.invoke(f"Install-Module -Name {module} -Scope AllUsers -Force -AllowClobber")
            except PowerShellError as e:
                raise PrerequisiteError(f"Failed to install {self.module_name}: {e}")

        try:
            self.shell.invoke(f"Import-Module -Name {module} -DisableNameChecking")
        except PowerShellError as e:
            raise PrerequisiteError(f"Failed to import {self.module_name}: {e}")
        logger.info(f"PowerShell module {self.module_name} is available")

    def probe(self, admin_url: str) -> None:
        """Checks that the admin endpoint answers HTTPS at all; any status code will do."""
        try:
            response = requests.head(admin_url, timeout=self.probe_timeout, allow_redirects=False)
            logger.debug(f"Admin endpoint {admin_url} answered {response.status_code}")
        except requests.RequestException as e:
            raise ConnectionFailure(f"Admin endpoint {admin_url} is not reachable: {e}")

    def ensure_connected(self, admin_url: str) -> None:
        """Connects to ``admin_url`` unless this session is already connected to it."""
        if self._connected and self.admin_url == admin_url:
            return

        if self.probe_endpoint:
            self.probe(admin_url)

        logger.info(f"Connecting to SharePoint Online admin: {admin_url}")
        try:
            self.shell.invoke(f"Connect-SPOService -Url {ps_quote(admin_url)}")
        except PowerShellError as e:
            raise ConnectionFailure(f"Failed to connect to {admin_url}: {e}")

        self.admin_url = admin_url
        self._connected = True

    def disconnect(self) -> None:
        """Ends the SharePoint Online session. Errors are logged, not raised."""
        if not self._connected:
            return
        logger.info("Disconnecting from SharePoint Online.")
        try:
            self.shell.invoke("Disconnect-SPOService")
        except PowerShellError as e:
            logger.warning(f"Error during disconnect: {e}")
        finally:
            self._connected = False
