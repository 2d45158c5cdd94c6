"""Lab-data ingestion and derived-metric engine for equipment QA reports."""

__version__ = "0.3.0"
