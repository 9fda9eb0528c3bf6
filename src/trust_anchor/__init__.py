"""Trust anchor stores for device attestation."""

from .registry import (
    TEST_TRUST_ANCHORS,
    FileTrustAnchorRegistry,
    StaticTrustAnchorRegistry,
    TrustAnchorEntry,
    TrustAnchorStore,
)

__all__ = [
    "TEST_TRUST_ANCHORS",
    "FileTrustAnchorRegistry",
    "StaticTrustAnchorRegistry",
    "TrustAnchorEntry",
    "TrustAnchorStore",
]
