"""Custom exceptions for newline-after-block."""


class NewlineAfterBlockError(Exception):
    """Base exception for all newline-after-block errors."""

    pass


class ConfigurationError(NewlineAfterBlockError):
    """Raised when the analyzer is configured with unusable values."""

    pass


class InvalidPatternError(ConfigurationError):
    """Raised when an exclusion pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"invalid regex pattern {pattern!r}: {reason}")
        self.pattern = pattern
