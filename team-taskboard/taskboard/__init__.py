"""Team Taskboard: task dashboard with signup, email verification and login."""

__version__ = "0.1.0"
