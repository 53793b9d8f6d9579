"""
Utilities - upload handling.
"""
