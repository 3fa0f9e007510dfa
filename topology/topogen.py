import common.flags as FLAG
from common.common import PRINTERR, PRINTV
from common.errors import ConfigurationError
from topology.linkclass import defaultCatalog
from topology.topology import Role, Topology

# Named dumbbell presets: (left count, right count, left long, right long).
PRESETS = {
    # The 6x6 dumbbell with 3 long links per side.
    'scenario_a': (6, 6, 3, 3),
    # A wider 20x20 dumbbell.
    'scenario_b': (20, 20, 10, 10),
    # More senders than receivers, exercises flow wrapping.
    'scenario_c': (4, 6, 2, 3),
}


def _checkSide(role, count, long_count):
    '''
    Validates the leaf count and long-link count of one side.
    '''
    if not isinstance(count, int) or isinstance(count, bool) or count <= 0:
        msg = f'{role.value} leaf count must be a positive integer, got {count}.'
        PRINTERR(msg)
        raise ConfigurationError(msg)
    if (not isinstance(long_count, int) or isinstance(long_count, bool) or
            long_count < 0 or long_count > count):
        msg = (f'{role.value} long count must be within [0, {count}], got '
               f'{long_count}.')
        PRINTERR(msg)
        raise ConfigurationError(msg)

def generateFabric(name):
    '''
    Generates one of the named dumbbell presets.
    '''
    if name not in PRESETS:
        msg = f'unknown dumbbell preset {name}, must be one of {list(PRESETS)}.'
        PRINTERR(msg)
        raise ConfigurationError(msg)
    left, right, left_long, right_long = PRESETS[name]
    return generateDumbbell(left, right, left_long, right_long,
                            netname=name)

def generateDumbbell(left_count, right_count, left_long_count,
                     right_long_count, catalog=None, netname=None):
    '''
    Generates a dumbbell topology. It has the following shape:
        2 routers joined by one bottleneck link.
        `left_count` left leaves, each linked to router 0.
        `right_count` right leaves, each linked to router 1.
        On each side, leaves [0, long count) use the long link class and the
        remaining leaves use the short link class.

    Returns a populated Topology object.

    catalog: LinkClassCatalog to pick link classes from. Defaults to the
             catalog built from flags.
    netname: name of the network, prefix of all entity names.
    '''
    _checkSide(Role.LEFT_LEAF, left_count, left_long_count)
    _checkSide(Role.RIGHT_LEAF, right_count, right_long_count)
    catalog = catalog if catalog else defaultCatalog()
    netname = netname if netname else FLAG.NETNAME

    topo = Topology(netname)
    # Add routers and the bottleneck link between them.
    r0 = topo.addNode(Role.ROUTER, 0)
    r1 = topo.addNode(Role.ROUTER, 1)
    topo.addLink(r0, r1, catalog.classFor(Role.ROUTER, 0, 0, 0))

    # Add leaves of each side and their access links. Left leaves attach to
    # router 0, right leaves to router 1.
    for role, router, count, long_count in [
            (Role.LEFT_LEAF, r0, left_count, left_long_count),
            (Role.RIGHT_LEAF, r1, right_count, right_long_count)]:
        for idx in range(count):
            leaf = topo.addNode(role, idx)
            link_class = catalog.classFor(role, idx, long_count, count)
            link = topo.addLink(leaf, router, link_class)
            PRINTV(2, f'{link.name}: {link_class.name} '
                      f'{link_class.data_rate} bps {link_class.delay} s')

    PRINTV(1, f'Generated dumbbell {netname}: {topo.numNodes()} nodes, '
              f'{topo.numLinks()} links.')
    return topo
