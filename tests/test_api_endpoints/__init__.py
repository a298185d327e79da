"""
API endpoint tests.
"""
