"""Blood Buddy: blood request lifecycle and donor matching service."""

__version__ = "1.0.0"
