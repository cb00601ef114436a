"""API Routers Package.

Routers:
- sync.py: /sync/* endpoints mirroring records into Google Sheets

Usage in main.py:
    from api.routers import sync_router

    app.include_router(sync_router, prefix="/sync", tags=["sync"])
"""

from .sync import router as sync_router

__all__ = ["sync_router"]
