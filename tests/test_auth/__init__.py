"""
Auth Module Tests
----------------
Test suite for the JWT codec, the auth service and the per-route auth requirements.
"""
