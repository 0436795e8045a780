"""Internal constants shared across the library."""

METERS_PER_NAUTICAL_MILE = 1852.0
EARTH_MEAN_RADIUS_M = 6_371_000.0

#: Identity of the perpetually-open trip accumulator.
CURRENT_IDENTITY = "current"
#: Identity of the all-time accumulator.
TOTAL_IDENTITY = "total"

DEFAULT_MOVING_STATES: frozenset[str] = frozenset({"sailing", "motoring"})
DEFAULT_SAMPLE_INTERVAL_MS = 10_000

# Signal K paths used for incoming samples and outgoing telemetry.
PATH_STATE = "navigation.state"
PATH_POSITION = "navigation.position"
PATH_SPEED_THROUGH_WATER = "navigation.speedThroughWater"
PATH_TRIP_LOG = "navigation.trip.log"
PATH_TRIP_LAST_RESET = "navigation.trip.lastReset"
PATH_LOG = "navigation.log"
