class InvalidStoryError(ValueError):
    """Story has no sentences, or a sentence has no words."""


class InvalidConfigurationError(ValueError):
    """Rejected player setting (the previous value is kept)."""
