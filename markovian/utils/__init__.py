"""
Shared utilities: logging and parallel helpers.
"""
