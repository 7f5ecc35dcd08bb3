"""Offline concert catalog sync.

The concertsync package is organized into focused modules:

- **discovery**: Finding the cached ``data.zip`` and the latest published archive
- **download**: Streaming the archive to disk with byte progress
- **extraction**: Unpacking the archive into a working directory
- **importer**: Mapping show/recording JSON to records and persisting them in batches
- **sync**: The orchestrator that sequences the phases above
- **archive**: On-demand recording metadata, tracks and reviews with a file cache

The main entry point for a bulk sync is ``SyncOrchestrator``, usually built
with ``create_sync_orchestrator_from_config``.
"""

from .sync import SyncOrchestrator, create_sync_orchestrator_from_config
from .version import __version__

__all__ = [
    "__version__",
    "SyncOrchestrator",
    "create_sync_orchestrator_from_config",
]
