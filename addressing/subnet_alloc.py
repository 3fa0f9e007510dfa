import ipaddress

from common.common import PRINTERR, PRINTV
from common.errors import AddressSpaceExhausted, ConfigurationError
from topology.topology import Role


def classfulPrefixLen(addr):
    '''
    Returns the prefix length of the classful network (A/B/C) containing the
    given IPv4 address. Raises ConfigurationError for addresses outside class
    A/B/C unicast space.
    '''
    first_octet = int(addr) >> 24
    if first_octet == 0 or first_octet == 127:
        raise ConfigurationError(f'{addr} is not a usable unicast address.')
    if first_octet < 128:
        return 8
    if first_octet < 192:
        return 16
    if first_octet < 224:
        return 24
    raise ConfigurationError(f'{addr} is not a class A/B/C address.')


class SubnetPool:
    '''
    A pool of equally sized subnets carved from a base prefix. The cursor
    starts at the base and moves one block forward on each allocation. The
    pool ends at the boundary of the classful network containing the base.
    name: pool name, for error reporting.
    base: base prefix in string format, e.g., '10.1.1.0/24'.
    '''
    def __init__(self, name, base):
        self.name = name
        try:
            self.base = ipaddress.IPv4Network(base)
        except ValueError as e:
            raise ConfigurationError(f'pool {name}: invalid base prefix '
                                     f'{base}: {e}') from e
        # Each link needs 2 usable addresses.
        if self.base.prefixlen > 30:
            raise ConfigurationError(f'pool {name}: base prefix {base} is '
                                     f'too small, must be /30 or shorter.')
        class_len = classfulPrefixLen(self.base.network_address)
        boundary = self.base.supernet(new_prefix=class_len) \
            if self.base.prefixlen > class_len else self.base
        self._block_size = self.base.num_addresses
        self._cursor = int(self.base.network_address)
        # First address past the end of the pool.
        self._end = int(boundary.broadcast_address) + 1

    def capacity(self):
        '''
        Returns the number of subnets this pool can still hand out.
        '''
        return (self._end - self._cursor) // self._block_size

    def next(self):
        '''
        Returns the subnet under the cursor and advances the cursor to the
        next disjoint block.
        '''
        if self._cursor + self._block_size > self._end:
            msg = f'pool {self.name} from {self.base} ran out of subnets.'
            PRINTERR(msg)
            raise AddressSpaceExhausted(msg)
        subnet = ipaddress.IPv4Network(
            f'{ipaddress.IPv4Address(self._cursor)}/{self.base.prefixlen}')
        self._cursor += self._block_size
        return subnet


class AddressAssignment:
    '''
    Address assignment of a topology. Each link owns one subnet; its src
    endpoint holds the first usable address and its dst endpoint the second.
    Addresses are stored as ipaddress.IPv4Interface objects.
    '''
    def __init__(self):
        # A map from link name to subnet.
        self._subnets = {}
        # A map from (node name, link name) to interface address.
        self._interfaces = {}
        # A map from address to (node name, link name), for uniqueness.
        self._owners = {}

    def assign(self, link, subnet):
        '''
        Assigns `subnet` to `link` and its first two usable addresses to the
        endpoints. Returns the (src, dst) interface addresses.
        '''
        if link.name in self._subnets:
            raise ConfigurationError(f'link {link.name} already owns subnet '
                                     f'{self._subnets[link.name]}.')
        hosts = []
        for offset in (1, 2):
            hosts.append(ipaddress.IPv4Interface(
                f'{subnet.network_address + offset}/{subnet.prefixlen}'))
        self._subnets[link.name] = subnet
        for node, iface in zip(link.endpoints(), hosts):
            if iface.ip in self._owners:
                msg = (f'address {iface.ip} of {node.name} on {link.name} '
                       f'already used by {self._owners[iface.ip]}.')
                PRINTERR(msg)
                raise AddressSpaceExhausted(msg)
            self._owners[iface.ip] = (node.name, link.name)
            self._interfaces[(node.name, link.name)] = iface
        return tuple(hosts)

    def numSubnets(self):
        return len(self._subnets)

    def subnetOf(self, link_name):
        '''
        Returns the subnet owned by the given link, None if not assigned.
        '''
        if link_name not in self._subnets:
            PRINTERR(f'subnetOf: link {link_name} has no subnet.')
            return None
        return self._subnets[link_name]

    def addressOf(self, node_name, link_name):
        '''
        Returns the interface address of a node on a link, None if not
        assigned.
        '''
        if (node_name, link_name) not in self._interfaces:
            PRINTERR(f'addressOf: {node_name} has no address on {link_name}.')
            return None
        return self._interfaces[(node_name, link_name)]

    def getAllSubnets(self):
        '''
        Returns {link name: subnet} in assignment order.
        '''
        return dict(self._subnets)

    def getAllInterfaces(self):
        '''
        Returns {(node name, link name): interface} in assignment order.
        '''
        return dict(self._interfaces)

    def findOwnerOfAddress(self, addr):
        '''
        Returns the (node name, link name) holding the given address, None if
        the address is not assigned.
        '''
        return self._owners.get(ipaddress.IPv4Address(addr))


def _checkDisjoint(assignment):
    '''
    Verifies that no two assigned subnets overlap. Pools advance
    independently, so a long pool may run into the base of another.
    '''
    ordered = sorted(assignment.getAllSubnets().items(),
                     key=lambda x: int(x[1].network_address))
    for (name_a, a), (name_b, b) in zip(ordered, ordered[1:]):
        if a.overlaps(b):
            msg = (f'subnet {a} of {name_a} overlaps subnet {b} of {name_b}, '
                   f'pools run into each other.')
            PRINTERR(msg)
            raise AddressSpaceExhausted(msg)

def allocate(topology, router_base, left_base, right_base):
    '''
    Assigns one subnet to every link of the dumbbell and one address to every
    link endpoint. Returns an AddressAssignment.

    router_base: base prefix of the bottleneck subnet.
    left_base: base prefix of the left access link subnets. Leaf i takes the
               i-th block after the base.
    right_base: base prefix of the right access link subnets.
    '''
    pools = {
        Role.ROUTER: SubnetPool('router', router_base),
        Role.LEFT_LEAF: SubnetPool('left', left_base),
        Role.RIGHT_LEAF: SubnetPool('right', right_base),
    }
    # Fail before carving anything if a pool is too small.
    demand = {
        Role.ROUTER: 1,
        Role.LEFT_LEAF: topology.numLeaves(Role.LEFT_LEAF),
        Role.RIGHT_LEAF: topology.numLeaves(Role.RIGHT_LEAF),
    }
    for role, pool in pools.items():
        if pool.capacity() < demand[role]:
            msg = (f'pool {pool.name} from {pool.base} holds '
                   f'{pool.capacity()} subnets, needs {demand[role]}.')
            PRINTERR(msg)
            raise AddressSpaceExhausted(msg)

    assignment = AddressAssignment()
    bottleneck = topology.getBottleneckLink()
    assignment.assign(bottleneck, pools[Role.ROUTER].next())
    for role in (Role.LEFT_LEAF, Role.RIGHT_LEAF):
        for leaf in topology.getLeaves(role):
            link = topology.findAccessLinkOfLeaf(leaf.name)
            subnet = pools[role].next()
            assignment.assign(link, subnet)
            PRINTV(2, f'{link.name}: {subnet}')
    _checkDisjoint(assignment)
    PRINTV(1, f'Assigned {assignment.numSubnets()} subnets to '
              f'{topology.name}.')
    return assignment
