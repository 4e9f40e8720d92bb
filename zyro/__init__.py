"""
Zyro - AI web app builder backend.

Plan -> approve -> generate -> run in a sandbox -> report.
"""

__version__ = "1.0.0"
