#!/usr/bin/env python3
"""
Seed the remote document store with the built-in sample projects, tasks,
clients and deals.

Usage:
    export FIREBASE_API_KEY=...
    export FIREBASE_PROJECT_ID=...
    python seed_firestore.py
    python seed_firestore.py --config ~/.config/nexus/nexus.yaml

Writes every sample record as a full document (document id == record id) in
one atomic commit, stamping createdAt/updatedAt with the server time.
"""
import argparse
import logging
import sys
from typing import List, Optional

from nexus.config import Config
from nexus.remote import RemoteError, RemoteSyncClient
from nexus.sample_data import sample_clients, sample_deals, sample_projects, sample_tasks

logger = logging.getLogger("seed_firestore")


def seed(config: Config, client: Optional[RemoteSyncClient] = None) -> int:
    """Push the sample set. Returns the number of documents written."""
    missing = config.missing_remote_keys()
    if missing:
        raise RemoteError(
            f"Configure the remote before seeding. Missing: {', '.join(missing)}"
        )
    client = client or RemoteSyncClient(config)
    return client.seed(sample_tasks(), sample_projects(), sample_deals(), sample_clients())


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed Firestore with sample data")
    parser.add_argument("--config", default=None, help="Path to nexus.yaml")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [seed] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    try:
        written = seed(Config.load(args.config))
    except RemoteError as e:
        logger.error(f"Seeding failed: {e}")
        return 1
    logger.info(f"Seed complete: {written} documents written")
    return 0


if __name__ == "__main__":
    sys.exit(main())
