from importlib.metadata import PackageNotFoundError, version
import logging
from typing import Dict, Optional

from eventship.constants import PACKAGE_NAME


LOG = logging.getLogger(__name__)


def get_version() -> Optional[str]:
    """
    Get the version of the eventship package.

    Returns:
      Optional[str]: The eventship version if found, otherwise None.
    """
    try:
        return version(PACKAGE_NAME)
    except PackageNotFoundError:
        LOG.exception("Unable to get eventship version.")
        return None


def get_user_agent(addition: str = "") -> str:
    """
    Get the user agent string for batch requests.

    Args:
      addition (str): Optional caller supplied token, appended after a single
        space once surrounding whitespace is trimmed.

    Returns:
      str: The user agent string in the format: eventship/{version}[ {addition}]
    """
    user_agent = f"{PACKAGE_NAME}/{get_version() or 'unknown'}"

    addition = (addition or "").strip()
    if addition:
        user_agent = f"{user_agent} {addition}"

    return user_agent


def get_meta_http_headers(user_agent_addition: str = "") -> Dict[str, str]:
    """
    Get the metadata headers for the client.

    Returns:
      Dict[str, str]: The metadata headers.
    """
    return {
        "User-Agent": get_user_agent(user_agent_addition),
    }
