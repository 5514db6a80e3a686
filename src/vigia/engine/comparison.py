"""Peer comparison of quota spending.

Ranks an entity's total spend against a peer group (typically the rest of
the state's delegation) and measures its distance from the peer average.
Peers with no reported spend are left out of both the average and the
ranking.
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass

import pandas as pd

from vigia.models import Entity


@dataclass
class PeerComparison:
    """Where one entity sits among its peers.

    Attributes:
        entity_id: Compared entity
        spend_total: Its total spend
        peer_average: Mean spend_total of peers with spend
        difference: spend_total - peer_average
        percent_above_average: difference as a percentage of the average
        rank: 1 = highest spender (ties share the better rank)
        peer_count: Peers with spend, including the entity itself
    """

    entity_id: str
    spend_total: float
    peer_average: float
    difference: float
    percent_above_average: float
    rank: int
    peer_count: int

    def to_dict(self) -> dict:
        return asdict(self)


def spend_frame(entities: Iterable[Entity]) -> pd.DataFrame:
    """One row per entity with spend, ranked by spend_total descending."""
    frame = pd.DataFrame(
        [
            {"entity_id": e.id, "name": e.name, "party": e.party, "spend_total": e.spend_total}
            for e in entities
            if e.spend_total > 0
        ],
        columns=["entity_id", "name", "party", "spend_total"],
    )
    if frame.empty:
        return frame.assign(rank=pd.Series(dtype="int64"))
    frame["rank"] = frame["spend_total"].rank(method="min", ascending=False).astype("int64")
    return frame.sort_values(["rank", "entity_id"]).reset_index(drop=True)


def compare_to_peers(entity: Entity, peers: Iterable[Entity]) -> PeerComparison | None:
    """Compare one entity against a peer group.

    The entity is added to the group if absent. Returns None when the
    entity has no reported spend.
    """
    if entity.spend_total <= 0:
        return None

    group = {p.id: p for p in peers}
    group[entity.id] = entity
    frame = spend_frame(group.values())

    average = float(frame["spend_total"].mean())
    difference = entity.spend_total - average
    row = frame.loc[frame["entity_id"] == entity.id].iloc[0]
    return PeerComparison(
        entity_id=entity.id,
        spend_total=entity.spend_total,
        peer_average=round(average, 2),
        difference=round(difference, 2),
        percent_above_average=round(difference / average * 100, 2) if average > 0 else 0.0,
        rank=int(row["rank"]),
        peer_count=len(frame),
    )
