"""
Purchase reconciliation and resilient entitlement migration.
"""

__version__ = "0.1.0"
