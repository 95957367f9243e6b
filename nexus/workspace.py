"""
Composition root: builds the remote client, cache and stores from a Config
and hands them out explicitly. Nothing in the package keeps module-level
store singletons; views receive the stores they render.
"""
import logging
from typing import Optional

from .cache import LocalCache
from .config import Config
from .deals import DealBoardStore
from .remote import RemoteSyncClient, WriteDispatcher
from .sample_data import sample_clients, sample_deals
from .tasks import TaskStore

logger = logging.getLogger(__name__)


class Workspace:
    """Owns one session's stores and their shared write dispatcher."""

    def __init__(self, config: Config, remote: Optional[RemoteSyncClient] = None,
                 cache: Optional[LocalCache] = None):
        self.config = config
        self.remote = remote or RemoteSyncClient(config)
        self.cache = cache if cache is not None else LocalCache(config.cache_path)
        self.writes = WriteDispatcher()
        self.tasks = TaskStore(
            self.remote,
            cache=self.cache,
            dispatcher=self.writes,
            namespace=config.cache_namespace,
        )
        # Deals are not part of the remote fetch; the board starts from samples
        self.deals = DealBoardStore(
            sample_deals(),
            sample_clients(),
            remote=self.remote,
            dispatcher=self.writes,
        )

    def start(self, follow: bool = False) -> None:
        """Load remote data; with follow=True keep applying remote snapshots."""
        self.tasks.init()
        if follow:
            self.tasks.start_sync()
        logger.info(f"Workspace ready (task source: {self.tasks.state.source})")

    def close(self) -> None:
        self.tasks.dispose()
        self.deals.dispose()
        self.writes.close()


def open_workspace(config_path: Optional[str] = None, follow: bool = False) -> Workspace:
    """Load config, build a Workspace and start it."""
    workspace = Workspace(Config.load(config_path))
    workspace.start(follow=follow)
    return workspace
