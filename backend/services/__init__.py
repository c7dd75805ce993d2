from .coordinator import RecapCoordinator
from .store import ChannelStore

__all__ = ["ChannelStore", "RecapCoordinator"]
