"""reviewed-patch: interactive diff review with persistent, session-scoped hunk tracking."""

__version__ = "0.1.0"
