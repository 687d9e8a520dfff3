"""
Services module for catalog access and sync business logic.

This module organizes services into:
- catalog: IGDB client, response cache and error taxonomy
- sync: Reconciliation of catalog records into local Game rows
"""
