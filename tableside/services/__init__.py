"""
                        Services Module

Contains the floor coordination logic. Pure rules live in plain modules;
adapters to the outside world follow the hybrid pattern with Mock/in-memory
(development) and Real (production) implementations.

Services:
    - allocation: Table layout parsing
    - distribution: Per-table portioning of shared and per-guest dishes
    - prep_list: Condiment and equipment prep list
    - lifecycle: Pure serving group transitions
    - store: ServingGroupStore state container
    - alerts: Late-service and attendance alerts
    - reconciler: Optimistic persistence and realtime reload
    - remote: Shared store adapters (memory / SQL)
    - feed: Change feed adapters (memory / Redis)
    - notifications: Sound and notification sinks (mock / webhook)
"""

from tableside.services.allocation import parse_table_allocation
from tableside.services.distribution import distribute_quantities, redistribute
from tableside.services.store import ServingGroupStore

__all__ = [
    "parse_table_allocation",
    "distribute_quantities",
    "redistribute",
    "ServingGroupStore",
]
