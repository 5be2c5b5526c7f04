"""
Data Source Module

Fetch layer for candidate payloads.

This module provides:
- Unified BaseDataSource interface
- Airtable client with pagination, timeouts and bounded retries
- Static in-memory source for offline runs
"""

__version__ = "0.1.0"
