"""mediaopt: image optimization process with backups, next-gen versions and locks.

A media is optimized size by size through a remote API. The process keeps a
backup of the original, derives WebP/AVIF versions, records the outcome of
every size and prevents concurrent work on the same media with an expiring
lock.
"""

__version__ = "0.1.0"
