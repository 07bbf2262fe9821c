"""Integration test configuration - set env vars before any app imports."""

import os

# Set required environment variables BEFORE any app module is imported.
# This prevents pydantic Settings validation from failing.
os.environ.setdefault("SEARCH_API_KEY", "test-search-key")
os.environ.setdefault("RELATIONSHIP_BACKEND", "memory")
