"""Console AI: agentic assistant for the business-management console."""

__version__ = "0.1.0"
