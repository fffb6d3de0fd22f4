"""Rate observation data model shared by the cache and the trend detector."""

import json
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class RateObservation:
    """One debounced trend decision for an asset.

    Stored newest-first in a capped list of at most three entries.
    """

    rate: float
    grew: bool

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str | bytes) -> "RateObservation":
        data = json.loads(raw)
        return cls(rate=float(data["rate"]), grew=bool(data["grew"]))
