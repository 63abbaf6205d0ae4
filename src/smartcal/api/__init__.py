# REST surface over the extraction service and the reminder scheduler.
# Created: 2026-10-06

from smartcal.api.app import create_app, run_api_server

__all__ = ["create_app", "run_api_server"]
