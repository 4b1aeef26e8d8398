"""
Shared constants, data models and configuration.
"""
