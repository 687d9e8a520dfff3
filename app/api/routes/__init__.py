"""
API routes.

This module organizes routes into:
- catalog: Read-only IGDB browse endpoints (/api/v1/igdb)
- sync: API-key protected sync triggers and status (/api/v1/games/sync)
"""
