from numpy.random import default_rng

import common.flags as FLAG
from common.common import PRINTERR, PRINTV
from common.errors import ConfigurationError, FlowMappingError
from topology.topology import Role
from traffic.traffic import Flow, RandomVariable

MAPPING_POLICIES = ('wrap', 'strict')
# Off/on pairs drawn per batch when sampling on periods.
SAMPLE_BATCH = 256


def mapDestination(k, left_count, mapping='wrap'):
    '''
    Returns the index of the left leaf that right leaf `k` sends to.

    mapping: wrap means destination index k mod left_count. strict means
             destination index k and requires k < left_count.
    '''
    if mapping not in MAPPING_POLICIES:
        raise ConfigurationError(f'unknown flow mapping {mapping}, must be one '
                                 f'of {MAPPING_POLICIES}.')
    if left_count <= 0:
        raise FlowMappingError(f'flow {k}: no left leaf to send to.')
    if k < left_count:
        return k
    if mapping == 'strict':
        raise FlowMappingError(f'flow {k}: no left leaf with index {k} among '
                               f'{left_count}, use wrap mapping.')
    return k % left_count

def genOnPeriods(on_time, off_time, start, stop, rng, batch=SAMPLE_BATCH):
    '''
    Samples the on periods of a single flow within [start, stop]. The flow
    starts in the off state and then alternates. On periods are clipped to
    `stop`; zero-length periods are dropped.

    Durations are drawn `batch` off/on pairs at a time. Each duration takes
    one uniform variate from `rng`, and `rng` is left where one draw per
    duration would have left it, so flows generated after this one see the
    same stream either way.

    Returns a tuple of (start, end) pairs.
    '''
    periods = []
    t = start
    state = rng.bit_generator.state
    used = 0
    while t < stop:
        u = rng.random(2 * batch)
        offs, bursts = off_time.ppf(u[0::2]), on_time.ppf(u[1::2])
        for off, burst in zip(offs.tolist(), bursts.tolist()):
            t += off
            used += 1
            if t >= stop:
                break
            used += 1
            end = min(t + burst, stop)
            if end > t:
                periods.append((t, end))
            t += burst
            if t >= stop:
                break
    rng.bit_generator.state = state
    rng.random(used)
    return tuple(periods)

def generate(topology, addresses, port, active_window, on_time=None,
             off_time=None, seed=None, rng=None, mapping='wrap',
             data_rate=None, packet_size=None, protocol=None):
    '''
    Generates one flow per right leaf. Flow k originates at right leaf k and
    targets the address of a left leaf chosen by `mapping`.

    Returns a tuple of Flow, ordered by right leaf index.

    topology: dumbbell Topology.
    addresses: AddressAssignment of `topology`.
    port: destination port of all flows.
    active_window: (start, stop) in seconds, shared by all flows.
    on_time/off_time: RandomVariable or (kind, params) for on/off durations.
                      Default to the ON_TIME/OFF_TIME flags.
    seed: seed of the on/off sampler, ignored if `rng` is given.
    rng: NumPy Generator to draw samples from.
    mapping: wrap/strict, see mapDestination().
    data_rate/packet_size/protocol: on/off application settings, default to
                                    flags.
    '''
    start, stop = active_window
    if start < 0 or stop <= start:
        msg = f'active window {active_window} must satisfy 0 <= start < stop.'
        PRINTERR(msg)
        raise ConfigurationError(msg)
    if not 1 <= port <= 65535:
        msg = f'port {port} out of range [1, 65535].'
        PRINTERR(msg)
        raise ConfigurationError(msg)
    on_time = RandomVariable.fromSpec(FLAG.ON_TIME if on_time is None
                                      else on_time)
    off_time = RandomVariable.fromSpec(FLAG.OFF_TIME if off_time is None
                                       else off_time)
    data_rate = FLAG.DATA_RATE if data_rate is None else data_rate
    packet_size = FLAG.PACKET_SIZE if packet_size is None else packet_size
    protocol = FLAG.PROTOCOL if protocol is None else protocol
    for name, value in (('data rate', data_rate),
                        ('packet size', packet_size)):
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            msg = f'{name} must be a positive integer, got {value}.'
            PRINTERR(msg)
            raise ConfigurationError(msg)
    rng = rng if rng is not None else default_rng(seed)

    left_leaves = topology.getLeaves(Role.LEFT_LEAF)
    flows = []
    for src in topology.getLeaves(Role.RIGHT_LEAF):
        dst = left_leaves[mapDestination(src.index, len(left_leaves), mapping)]
        link = topology.findAccessLinkOfLeaf(dst.name)
        iface = addresses.addressOf(dst.name, link.name) if link else None
        if iface is None:
            msg = f'flow {src.index}: {dst.name} has no address.'
            PRINTERR(msg)
            raise FlowMappingError(msg)
        flow = Flow(name=f'{src.name}->{dst.name}',
                    src=src.name,
                    dst=dst.name,
                    dst_address=iface.ip,
                    dst_port=port,
                    on_time=on_time,
                    off_time=off_time,
                    start_time=float(start),
                    stop_time=float(stop),
                    on_periods=genOnPeriods(on_time, off_time, start, stop,
                                            rng),
                    data_rate=data_rate,
                    packet_size=packet_size,
                    protocol=protocol)
        PRINTV(2, f'{flow.name}: {flow.dst_address}:{port}, '
                  f'{len(flow.on_periods)} on periods.')
        flows.append(flow)
    PRINTV(1, f'Generated {len(flows)} flows on {topology.name}.')
    return tuple(flows)
