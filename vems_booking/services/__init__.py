"""
Service layer for the VEMS booking core.
"""
