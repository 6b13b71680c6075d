"""SharePoint Data Access Governance insight report job."""

__version__ = "0.1.0"
