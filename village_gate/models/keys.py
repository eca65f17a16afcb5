# =======================================================================================
# village_gate/models/keys.py - Natural Deduplication Key
# =======================================================================================
from datetime import datetime
from typing import Any, Mapping, NamedTuple, Optional

from ..utils.validators import blank_to_none, to_naive_utc


class LogNaturalKey(NamedTuple):
    """
    Identity of one physical gate crossing within a tenant.

    Two entry/exit logs with the same (timestamp, gate, plate) describe the
    same event. Values are normalized on construction so that a stored row and
    an incoming candidate compare equal regardless of timezone representation
    or empty-vs-missing plate.
    """

    timestamp: datetime
    gate_id: str
    vehicle_plate: Optional[str]

    @classmethod
    def build(cls, timestamp: datetime, gate_id: Any, vehicle_plate: Optional[str]) -> "LogNaturalKey":
        return cls(to_naive_utc(timestamp), str(gate_id), blank_to_none(vehicle_plate))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "LogNaturalKey":
        return cls.build(row["timestamp"], row["gate_id"], row.get("vehicle_plate"))
