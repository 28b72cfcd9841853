from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when a topology is missing a required option (e.g. the tag name)."""


class FetchError(RuntimeError):
    """Raised when the inventory could not be read this cycle.

    This means "no information", never "no peers".
    """
