"""
Storage for generated documents.
"""

from .artifacts import Artifact, ArtifactStore, ArtifactNotFoundError, artifact_filename

__all__ = [
    "Artifact",
    "ArtifactStore",
    "ArtifactNotFoundError",
    "artifact_filename",
]
