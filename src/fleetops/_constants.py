"""Internal constants shared across the library."""

USER_AGENT = "fleetops/0.4"

# Prefer header for upserts: merge on conflict and echo the saved row back.
UPSERT_PREFER = "resolution=merge-duplicates,return=representation"

# Natural uniqueness key for tours, passed to the store as ``on_conflict``.
TOUR_CONFLICT_KEY: tuple[str, ...] = ("date", "tourNumber")
