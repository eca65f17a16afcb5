# =======================================================================================
# village_gate/__init__.py - Package Initialization
# =======================================================================================
"""
Village Gate Sync - gate-side core of a multi-tenant village management platform

Batched ingestion of entry/exit logs from offline-capable gate devices and
time-boxed guest approval requests from guards to households.
"""

__version__ = "1.0.0"
__author__ = "Village Gate Team"
