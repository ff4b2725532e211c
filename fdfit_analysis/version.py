"""
Version information for the F,d curve fitting toolkit.

This is the SINGLE SOURCE OF TRUTH for version information.
All other files should import from here.
"""

__version__ = '1.2.0'
__version_info__ = (1, 2, 0)
__release_date__ = '2026-10-17'

# Breaking changes in this version
__breaking_changes__ = [
    "Right-boundary sweep positions are stored in traversal (decreasing) order",
    "Global fit confidence intervals are opt-in (compute_conf_int=True)",
]

# Human-readable version string
def get_version_string():
    """Return formatted version string."""
    return f"v{__version__} ({__release_date__})"

# For compatibility
VERSION = __version__
