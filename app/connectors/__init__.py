"""
app/connectors package marker.
"""

from app.connectors.base import GraphClient, GraphRequestError
from app.connectors.graph_drive import GraphDriveDiscovery, GraphWorkbook
from app.connectors.local_workbooks import LocalFolderDiscovery, OpenpyxlWorkbook

__all__ = [
    "GraphClient",
    "GraphRequestError",
    "GraphDriveDiscovery",
    "GraphWorkbook",
    "LocalFolderDiscovery",
    "OpenpyxlWorkbook",
]
