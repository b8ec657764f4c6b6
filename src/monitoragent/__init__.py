"""Host-resident health monitor with S3-backed dated record sync."""

__version__ = "0.1.0"
