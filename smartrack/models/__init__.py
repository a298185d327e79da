"""
Models Package
--------------
Pydantic models matching the PostgreSQL schema of the auth subsystem, plus
the request and response models of the API.
"""
