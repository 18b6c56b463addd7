"""Application-wide constants.

This module centralizes magic numbers that are used across multiple
modules. For environment-specific configuration, see config.py.
"""

# =============================================================================
# Learning path
# =============================================================================

# currentPosition of a freshly created (or reset) progress record
INITIAL_POSITION: int = 1

# Upper bound for completion percentages
MAX_PERCENTAGE: int = 100

# =============================================================================
# Quiz defaults (mirrors the catalog column defaults)
# =============================================================================

DEFAULT_PASSING_SCORE_PERCENT: int = 80

DEFAULT_MAX_ATTEMPTS: int = 3

# 0 means no time limit
UNLIMITED_TIME: int = 0

# =============================================================================
# Pagination Defaults
# =============================================================================

# Default page size for admin progress listing
DEFAULT_PAGE_SIZE: int = 20

# Maximum page size to prevent abuse
MAX_PAGE_SIZE: int = 100
