"""
Operational helpers: logging and configuration loading.
"""
