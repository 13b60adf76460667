"""Base exception for the n8n manager."""


class N8nManagerError(Exception):
    """Base exception for all n8n manager errors."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)
