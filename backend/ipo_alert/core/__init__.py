"""
Core configuration, database, clock and error types.
"""
