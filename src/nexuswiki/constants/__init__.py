"""Wiki engine constants.

Re-exports all constants for convenient importing:
    from nexuswiki.constants import HOME_PAGE_NAME, ALL_PAGES_CACHE_MINUTES
"""

from nexuswiki.constants.wiki import *  # noqa: F403
from nexuswiki.constants.storage import *  # noqa: F403
