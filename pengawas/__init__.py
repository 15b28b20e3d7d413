"""Backend for school supervisors: activity log, schools and periodic reports."""

__version__ = "0.1.0"
