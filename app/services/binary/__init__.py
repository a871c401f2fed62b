"""
Binary tree engines.

- placement: where a new member attaches
- pv_propagation: crediting purchase volume to the ancestor chain
- pairing_settlement: matching leg volume into pairing bonuses
"""

from app.services.binary.pairing_settlement import (
    PairingSettlementEngine,
    SettlementResult,
)
from app.services.binary.placement import Placement, PlacementEngine
from app.services.binary.pv_propagation import (
    PropagationResult,
    PvPropagationEngine,
)


__all__ = [
    "PairingSettlementEngine",
    "Placement",
    "PlacementEngine",
    "PropagationResult",
    "PvPropagationEngine",
    "SettlementResult",
]
