class StatusTransitionError(ValueError):
    """Raised when an update would move a record backwards or rewrite a set-once field."""
