"""
Pytest configuration for integration tests.

Loads .env file so tests can access OLLAMA_HOST / OLLAMA_MODEL.
"""

from dotenv import load_dotenv


def pytest_configure(config):
    """Load .env file before tests run."""
    load_dotenv()
