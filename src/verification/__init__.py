"""
Identity verification against the remote service.
"""

from .backends import (
    FaceMatcher,
    TextReader,
    RemoteServiceClient,
    RemoteFaceMatcher,
    RemoteTextReader,
    VisionTextReader,
    create_backends_from_config,
)
from .orchestrator import VerificationOrchestrator, DEFAULT_MATCH_THRESHOLD
from .parsing import extract_fields

__all__ = [
    "FaceMatcher",
    "TextReader",
    "RemoteServiceClient",
    "RemoteFaceMatcher",
    "RemoteTextReader",
    "VisionTextReader",
    "create_backends_from_config",
    "VerificationOrchestrator",
    "DEFAULT_MATCH_THRESHOLD",
    "extract_fields",
]
