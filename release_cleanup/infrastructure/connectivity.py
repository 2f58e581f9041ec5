"""Network self-test used to validate the runner can reach the internet."""

import logging
import requests

logger = logging.getLogger(__name__)

TEST_URL = "https://www.wikipedia.org/"
TIMEOUT_SECONDS = 60


def check_connectivity(url: str = TEST_URL) -> bool:
    """
    Issue one unauthenticated GET and check the status is 2xx.

    Args:
        url: Endpoint expected to be reachable

    Returns:
        True if the endpoint answered with a success status
    """
    logger.info(f"Starting test sequence, trying to reach {url}")
    try:
        response = requests.get(url, timeout=TIMEOUT_SECONDS)
    except requests.exceptions.RequestException as e:
        logger.error(f"Error during test sequence: {e}")
        return False

    if response.status_code // 100 == 2:
        logger.info(f"Response code is {response.status_code}")
        return True
    logger.error(f"Response code is {response.status_code}")
    return False
