"""Page and cache defaults.

These values describe the wiki itself: which page is the landing page, how
long the page listing may be served from memory, and the wording of the
change records written for each user action.
"""

# =============================================================================
# Home Page
# =============================================================================
# The home page is the landing page of the wiki. It can be edited but never
# deleted or renamed. The name is a slug, so it must already be kebab-case.

HOME_PAGE_NAME = "knowledge-nexus"

# =============================================================================
# All-Pages Cache
# =============================================================================
# The sidebar of every rendered page lists all pages, so the listing is read
# far more often than it changes. It is cached as a single entry and dropped
# on every successful write; the TTL only bounds how long an idle entry lives.

ALL_PAGES_CACHE_KEY = "AllPages"
ALL_PAGES_CACHE_MINUTES = 30

# =============================================================================
# Change Record Names
# =============================================================================
# Human-readable descriptions appended to the change history. The page-level
# ones are formatted with the page name or title the user supplied.

CHANGE_CREATE_PAGE = "Create Page {name}"
CHANGE_EDIT_PAGE = "Edit Page {name}"
CHANGE_DELETE_PAGE = "Delete Page"
CHANGE_DELETE_ATTACHMENT = "Delete Attachment"
