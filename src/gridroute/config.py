"""
Tuning constants for the grid routing and placement engine.

Every value here is a default. Functions and option dataclasses accept
keyword overrides, so nothing in this module needs to be edited to tune a
single call.
"""

# =============================================================================
# ROUTING CONFIGURATION - Adjust these values to tune routing behavior
# =============================================================================

# --- Path search ---

# Extra cost added whenever a route changes direction.
# High values produce routes with as few corners as possible.
TURN_PENALTY = 20

# Turn penalty used by the autorouter's last-resort retry
RELAXED_TURN_PENALTY = 5

# Node expansions before a search gives up
MAX_SEARCH_ITERATIONS = 50000
AUTOROUTE_MAX_ITERATIONS = 60000
RELAXED_MAX_ITERATIONS = 80000

# Cells around the start/goal bbox searched when no explicit bounds are given
SEARCH_EXPAND = 60

# --- Solder points ---

# Holes between mandatory support solder points on straight runs
SUPPORT_INTERVAL = 5

# --- Obstacles ---

# Cells kept clear around a component outline
COMPONENT_MARGIN = 1

# Tolerance when matching endpoints that arrive as real-valued coordinates
NET_EPSILON = 0.25

# =============================================================================
# AUTOROUTER CONFIGURATION
# =============================================================================

DEFAULT_MAX_PASSES = 3

# How far congestion spreads from a routed trace, and how much it costs
CONGESTION_SPREAD = 1
CONGESTION_TRACE_WEIGHT = 3
CONGESTION_NEIGHBOUR_WEIGHT = 1

# Routes with a point inside the failed edge's bbox +/- this margin
# are candidates for rip-up
RIPUP_MARGIN = 3

# --- Edge ordering (lower priority routes first) ---

# Adjacent pins become solder bridges and always go first
ADJACENT_PRIORITY = -1000

# Power and ground nets are long and flexible, so they route last
POWER_NET_PRIORITY = 500

# Short two-pin nets have the fewest alternatives
SHORT_NET_BONUS = 50
SHORT_NET_DISTANCE = 5

# =============================================================================
# PLACEMENT CONFIGURATION
# =============================================================================

# Weight of bounding-box area growth in the greedy placement cost
PACK_AREA_WEIGHT = 0.5

# Reading-order tiebreak weights (row, column)
READING_ORDER_ROW_WEIGHT = 0.25
READING_ORDER_COL_WEIGHT = 0.08

# Wire length weight once a component has placed neighbours
WIRE_LENGTH_WEIGHT = 3.0

# Simulated annealing schedule
SA_MIN_ITERATIONS = 20000
SA_MAX_ITERATIONS = 400000
SA_ITERATIONS_PER_PAIR = 200
SA_END_TEMPERATURE = 0.005
SA_SHIFT_PROBABILITY = 0.6
