"""
Utility helpers for Refevo.
"""
