#!/usr/bin/env python3
"""Script to delete old GitHub releases and their tags."""

import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from release_cleanup.infrastructure.config import ConfigurationError, Settings
from release_cleanup.infrastructure.connectivity import check_connectivity
from release_cleanup.infrastructure.github_client import GitHubReleaseClient
from release_cleanup.application.cleanup_service import CleanupService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main(argv=None):
    """Delete releases outside the retention window."""
    if argv is None:
        argv = sys.argv[1:]

    if argv and argv[0] == "test":
        return 0 if check_connectivity() else 1

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    try:
        with GitHubReleaseClient(settings.coordinate, api_url=settings.api_url) as client:
            service = CleanupService(client, dry_run=settings.dry_run)

            logger.info(f"Cleaning up releases of {settings.coordinate.full_name}")
            summary = service.run(settings.params)

        logger.info(f"Cleanup completed.\n{summary.format()}")
        return 0

    except Exception as e:
        logger.error(f"Cleanup failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
