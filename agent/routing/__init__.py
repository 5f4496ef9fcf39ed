"""
Routing layer for the zero-typing booking dialog.

Architecture:
    InboundEvent → BookingOrchestrator
        ├─ SessionContextStore.get (or recover_from_history when degraded)
        ├─ text: clarification / popular times / ranked alternatives
        ├─ tap: confirmation card / booked / scenario slots
        └─ SessionContextStore.save → OrchestratorResult(payloads)
"""

from agent.routing.booking_orchestrator import (
    BookingOrchestrator,
    InboundEvent,
    OrchestratorResult,
)

__all__ = [
    "BookingOrchestrator",
    "InboundEvent",
    "OrchestratorResult",
]
