"""All of these indicate a bug at the call site, not a transient condition."""


class OverlayError(Exception):
    pass


class NotStarted(OverlayError, RuntimeError):
    """Overrides were written or copied before the store was started."""

    def __init__(self, store_name: str):
        super().__init__(
            f"Override store '{store_name}' not started, please call start() before changing state"
        )
        self.store_name = store_name


class MustProvideCaller(OverlayError, TypeError):
    """A caller argument was not a CallerId."""


class NoOverridesFound(OverlayError, LookupError):
    """A strict copy found nothing to copy."""
