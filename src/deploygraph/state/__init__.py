from .models import ObservedResource, RemoteState
from .store import load_state, save_state, STATE_FORMAT_VERSION

__all__ = ["ObservedResource", "RemoteState", "load_state", "save_state", "STATE_FORMAT_VERSION"]
