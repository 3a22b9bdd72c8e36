"""adf-bridge: translate between Atlassian Document Format and flavored markdown."""

__version__ = "0.1.0"
