"""
Pytest configuration for SmartRack auth tests.
Sets up the Python path and the environment before the settings are loaded.
"""

import os
import sys
from pathlib import Path

# Add the project root to Python path for all tests
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

# Set up test environment variables
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-smartrack-tests")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_HOST", "localhost")
os.environ.setdefault("DATABASE_PORT", "5432")
os.environ.setdefault("DATABASE_NAME", "smartrack_test")
os.environ.setdefault("DATABASE_USER", "smartrack")
os.environ.setdefault("DATABASE_PASSWORD", "smartrack")
