"""Service layer exports."""

from .errors import CollaboratorError, FactoryError, SaveLoadError
from .collaborators import Collaborators
from .events import EngineEvent, EventListeners, SavePointRequest
from .save_service import ProfileSaveService
from .controllers import ExperienceEngine, TickReport
from .factories import create_engine

__all__ = [
    "CollaboratorError",
    "FactoryError",
    "SaveLoadError",
    "Collaborators",
    "EngineEvent",
    "EventListeners",
    "SavePointRequest",
    "ProfileSaveService",
    "ExperienceEngine",
    "TickReport",
    "create_engine",
]
