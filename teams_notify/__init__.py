"""Release notification digests for Microsoft Teams incoming webhooks."""

__version__ = "1.0.0"
