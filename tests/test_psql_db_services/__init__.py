"""
PostgreSQL service tests.
"""
