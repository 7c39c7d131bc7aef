"""
Scheduling Domain - slot grid, availability and conflict detection

Everything in here is storage-agnostic except ``conflicts.has_conflict``,
which runs the overlap predicate against the bookings table.

Structure:
```
domain/scheduling/
├── slots.py         # Slot model: category windows, unit prices, slot merging
├── availability.py  # Per-slot occupancy read model for one ground + date
└── conflicts.py     # Overlap predicate and the authoritative conflict query
```

Availability and conflict detection share ``intervals_overlap`` and the same
status sets, so a slot shown as available is exactly a slot that
``has_conflict`` would accept.
"""
