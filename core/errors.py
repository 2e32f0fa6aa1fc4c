"""
Typed errors raised by the theme composition engine.
Routers map these to their own response shapes; the engine knows nothing about HTTP.
"""


class EngineError(Exception):
    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        out = {"error": self.message}
        if self.details:
            out["details"] = self.details
        return out


class NotFoundError(EngineError):
    """Store, template, section, block, backup or theme package does not exist."""


class ConflictError(EngineError):
    """Duplicate default template, deleting a default template, code/name collision."""


class ValidationError(EngineError):
    """Malformed preset id, settings payload or file path. Raised before any write."""


class IntegrityWarning(EngineError):
    """
    Malformed theme JSON or a backup checksum mismatch.
    Normally collected into a warnings list; raised only on strict restores.
    """
