"""
Shared helpers for Unburden.
"""
