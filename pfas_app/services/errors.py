class InvalidConfigurationError(ValueError):
    """Raised when a system record or scan option cannot be modeled.

    The message names the offending field and value. The scanner never
    recovers from it; callers see it exactly as the first engine raised it.
    """

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.field = field
