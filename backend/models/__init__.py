from .clip import Clip
from .recap import (
    MAX_RECAP_CLIPS,
    MAX_RECAP_SECONDS,
    Artifact,
    Manifest,
    ManifestEntry,
    RecapKey,
    RecapOutcome,
)
from .session import DEFAULT_CATEGORY, StreamSession

__all__ = [
    "StreamSession",
    "DEFAULT_CATEGORY",
    "Clip",
    "RecapKey",
    "Manifest",
    "ManifestEntry",
    "Artifact",
    "RecapOutcome",
    "MAX_RECAP_CLIPS",
    "MAX_RECAP_SECONDS",
]
