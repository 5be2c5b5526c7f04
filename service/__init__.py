"""
Service Module

Configuration, HTTP routes and CLI for the poll service.
"""

__version__ = "0.1.0"
