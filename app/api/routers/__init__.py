"""
app/api/routers package marker.
"""

from app.api.routers.export_router import router as export_router
from app.api.routers.spreadsheet_ingestion import router as spreadsheet_ingestion_router

__all__ = [
    "export_router",
    "spreadsheet_ingestion_router",
]
