"""
Engine services.
"""
