"""Embedded database and blob storage settings.

The wiki keeps pages, the change history and attachment blobs in a single
SQLite file next to the application. Each operation opens its own short-lived
connection, so lock contention is resolved by SQLite's busy timeout rather
than by an in-process connection pool.
"""

# =============================================================================
# Database File
# =============================================================================

DEFAULT_DB_FILENAME = "wiki.db"

# =============================================================================
# Locking
# =============================================================================
# Seconds a connection waits for a competing writer before giving up with
# "database is locked". Short requests rarely hold the lock for long.

BUSY_TIMEOUT_SECONDS = 5.0

# =============================================================================
# Blob Chunking
# =============================================================================
# Attachment content is split into fixed-size chunks so a large upload never
# has to be materialized as a single SQLite value. 255 KiB keeps each chunk
# comfortably below SQLite's default page cache size.

CHUNK_SIZE_KB = 255

# Fallback MIME type when neither the uploader nor the file name says otherwise
DEFAULT_MIME_TYPE = "application/octet-stream"

# =============================================================================
# Orphan Sweep
# =============================================================================
# A save uploads its attachment before the page row is written, so a blob no
# page references yet may belong to a save still in flight. The sweep leaves
# blobs younger than this alone.

ORPHAN_MIN_AGE_MINUTES = 60
