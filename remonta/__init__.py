"""
Remonta contractor directory - location-aware search over NDIS support contractors.

Find contractors near a suburb, postcode or state, filtered by gender and
support type, nearest first.

CLI Usage:
    remonta search "Parramatta NSW" --distance 25
    remonta search NSW -f json | jq '.contractors'
    remonta web  # Start the API server

Library Usage:
    from remonta import search_contractors

    result = search_contractors(location="Parramatta", distance=25, limit=20)

    for c in result.contractors:
        print(f"{c.record.full_name}: {c.distance_km} km")
"""

__version__ = "1.2.0"
__author__ = "Remonta"

# Semantic versioning
# MAJOR.MINOR.PATCH
VERSION_INFO = {
    "major": 1,
    "minor": 2,
    "patch": 0,
    "release": "stable",  # stable, beta, alpha
}


def get_version() -> str:
    """Get full version string."""
    version = f"{VERSION_INFO['major']}.{VERSION_INFO['minor']}.{VERSION_INFO['patch']}"
    if VERSION_INFO["release"] != "stable":
        version += f"-{VERSION_INFO['release']}"
    return version


from remonta.api import search_contractors

__all__ = ["search_contractors", "__version__", "get_version", "VERSION_INFO"]
