# VERBOSE=0: no informational prints.
# VERBOSE=1: informational prints.
# VERBOSE=2: per-entity debug prints.
VERBOSE = 1

# Name of the generated network, used as prefix of all entity names.
NETNAME = 'dumbbell'

# Number of leaf nodes attached to the left/right router.
LEFT_COUNT = 6
RIGHT_COUNT = 6

# Number of leaves on each side that use the long access link class. Leaves
# with index below this value are long, the rest are short.
LEFT_LONG_COUNT = 3
RIGHT_LONG_COUNT = 3

# Link classes: data rate (in bps) and one-way propagation delay (in sec).
BOTTLENECK_RATE = 10 * 1000 * 1000
BOTTLENECK_DELAY = 0.01
LONG_RATE = 100 * 1000 * 1000
LONG_DELAY = 0.05
SHORT_RATE = 100 * 1000 * 1000
SHORT_DELAY = 0.005

# Base prefixes of the three subnet pools. Each link consumes one block of the
# same prefix length, advancing from the base.
ROUTER_BASE = '10.3.1.0/24'
LEFT_BASE = '10.1.1.0/24'
RIGHT_BASE = '10.2.1.0/24'

# Destination port of all flows.
PORT = 1000

# Active window [start, stop] of all flows, in simulated seconds.
START_TIME = 0.0
STOP_TIME = 10.0

# On/off duration distributions, as (kind, params). Must be one of
# uniform (min, max) or exp (mean, bound).
ON_TIME = ('uniform', (0.0, 1.0))
OFF_TIME = ('uniform', (0.0, 1.0))

# Sending rate (in bps) during on periods, packet size (in bytes) and
# transport protocol of each flow.
DATA_RATE = 500 * 1000
PACKET_SIZE = 512
PROTOCOL = 'tcp'

# How right leaves map to left leaves when the sides differ in size.
# Must be one of wrap/strict.
FLOW_MAPPING = 'wrap'

# Seed of the on/off sampler. None means a fresh seed every run.
SEED = 1
