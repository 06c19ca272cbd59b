"""Distance ranking of fetched contractors."""

import logging
from typing import List, Optional, Sequence, Union

from remonta.models import ContractorRecord, Coordinate, RankedContractor
from remonta.search.locations import haversine_distance

logger = logging.getLogger(__name__)


def rank_by_distance(
    records: Sequence[ContractorRecord],
    origin: Optional[Coordinate],
    radius_km: Optional[float] = None,
) -> List[Union[ContractorRecord, RankedContractor]]:
    """
    Order contractors nearest-first from ``origin``.

    Without an origin the records come back unchanged, in fetch order.
    With one, contractors lacking coordinates are dropped (they cannot be
    placed in a distance ordering), distances are rounded to 0.1 km, and
    anything beyond ``radius_km`` is dropped. The sort is stable, so equal
    distances keep their newest-first fetch order.

    Args:
        records: One fetched page of contractors
        origin: Search coordinate, or None when geocoding did not resolve
        radius_km: Optional maximum distance

    Returns:
        ContractorRecord list (no origin) or RankedContractor list
    """
    if origin is None:
        return list(records)

    ranked: List[RankedContractor] = []
    skipped = 0

    for record in records:
        if record.latitude is None or record.longitude is None:
            skipped += 1
            continue

        distance = round(
            haversine_distance(origin.latitude, origin.longitude, record.latitude, record.longitude),
            1,
        )
        if radius_km is not None and distance > radius_km:
            continue

        ranked.append(RankedContractor(record=record, distance_km=distance))

    ranked.sort(key=lambda r: r.distance_km)

    if skipped:
        logger.debug("Dropped %d contractors without coordinates", skipped)

    return ranked
