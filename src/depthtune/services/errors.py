"""Service-layer exceptions."""


class FactoryError(Exception):
    """Raised when the engine cannot be assembled from its definitions."""


class SaveLoadError(Exception):
    """Raised when profile state cannot be serialized or restored."""


class CollaboratorError(Exception):
    """Raised by collaborator implementations when a request could not be carried out."""
