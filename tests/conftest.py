"""
conftest.py
===========
Shared test setup. Loaded by pytest before any test module, so the
database location is fixed before ``telemed_backend.db`` builds its engine.
"""

import os
import tempfile

TEST_DB_DIR = tempfile.mkdtemp(prefix="telemed-tests-")
os.environ["TELEMED_DB"] = os.path.join(TEST_DB_DIR, "test.db")
