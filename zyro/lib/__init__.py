"""
Shared libraries: credential encryption, monitoring.
"""
