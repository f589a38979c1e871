from __future__ import annotations

from dataclasses import dataclass

"""MissingSiteRecord: wizard-only input for a site that does not exist yet."""

__all__ = [
    "MissingSiteRecord",
]


@dataclass(frozen=True)
class MissingSiteRecord:
    """A new site id paired with the user-supplied project/location/depth.

    Collected one at a time by the wizard, written to the sites table and then
    discarded.
    """
    site_id: int
    project: str
    location: str
    depth: int | None = None
