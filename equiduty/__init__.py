"""
EquiDuty - Selection Process Turn-Order Engine

Client-side core for turn-based routine selection in a stable:
members take turns, in a fixed order, choosing which routines they
will perform during a bounded date window.

Layers:
- domain: selection process entity, status state machine, turn order types
- application: ports for the REST backend and the wizard/detail/list controllers
- infrastructure: httpx REST adapter, in-memory backend, structured logging
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
