"""
Shared-funding (sybil cluster) heuristic, as a swappable strategy.

The extractor only asks is_linked(identity). KnownClusterCheck answers from a
configured set of clusters (identities known to share a funding source),
loaded from JSON: either {"cluster_name": [addresses...]} or [[addresses...], ...].
Tracing first-funding transfers on chain is a different strategy and is not
implemented here.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterable, Mapping, Protocol

from backend_veritas.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CLUSTERS_PATH = Path(__file__).resolve().parent / "sybil_clusters.json"
DEFAULT_MIN_CLUSTER_SIZE = 2


class FundingLinkCheck(Protocol):
    def is_linked(self, identity: str) -> bool:
        """True if identity shares a funding source with other known identities."""
        ...


class KnownClusterCheck:
    """Membership test against known clusters; clusters below min_cluster_size are ignored."""

    def __init__(
        self,
        clusters: Mapping[str, Iterable[str]] | None = None,
        *,
        min_cluster_size: int = DEFAULT_MIN_CLUSTER_SIZE,
    ) -> None:
        self._min_cluster_size = max(1, min_cluster_size)
        self._member_clusters: dict[str, list[str]] = {}
        self._cluster_sizes: dict[str, int] = {}
        for name, members in (clusters or {}).items():
            cleaned = {str(m).strip() for m in members if m and str(m).strip()}
            self._cluster_sizes[name] = len(cleaned)
            for member in cleaned:
                self._member_clusters.setdefault(member, []).append(name)

    @property
    def cluster_count(self) -> int:
        return len(self._cluster_sizes)

    def cluster_for(self, identity: str) -> str | None:
        """First cluster (in load order) containing identity that meets the size floor."""
        for name in self._member_clusters.get(identity.strip(), ()):
            if self._cluster_sizes[name] >= self._min_cluster_size:
                return name
        return None

    def is_linked(self, identity: str) -> bool:
        return self.cluster_for(identity) is not None


def _parse_clusters(data: object) -> dict[str, list[str]]:
    if isinstance(data, dict):
        return {str(k): list(v) for k, v in data.items() if isinstance(v, list)}
    if isinstance(data, list):
        return {f"cluster_{i}": list(v) for i, v in enumerate(data) if isinstance(v, list)}
    return {}


def load_known_clusters(
    path: str | Path | None = None,
    *,
    min_cluster_size: int = DEFAULT_MIN_CLUSTER_SIZE,
) -> KnownClusterCheck:
    """Load clusters from path (or SYBIL_CLUSTERS_PATH). Missing or unreadable file → no clusters."""
    path_str = str(path) if path else (os.getenv("SYBIL_CLUSTERS_PATH", "").strip() or str(DEFAULT_CLUSTERS_PATH))
    file_path = Path(path_str)
    if not file_path.is_file():
        logger.debug("funding_clusters_missing", path=path_str)
        return KnownClusterCheck(min_cluster_size=min_cluster_size)
    try:
        with open(file_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("funding_clusters_load_failed", path=path_str, error=str(e))
        return KnownClusterCheck(min_cluster_size=min_cluster_size)
    check = KnownClusterCheck(_parse_clusters(data), min_cluster_size=min_cluster_size)
    logger.info("funding_clusters_loaded", path=path_str, clusters=check.cluster_count)
    return check
