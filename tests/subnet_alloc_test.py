import ipaddress
import unittest

from addressing.subnet_alloc import SubnetPool, allocate, classfulPrefixLen
from common.errors import AddressSpaceExhausted, ConfigurationError
from topology.topogen import generateDumbbell
from topology.topology import Role

ROUTER_BASE = '10.3.1.0/24'
LEFT_BASE = '10.1.1.0/24'
RIGHT_BASE = '10.2.1.0/24'
BOTTLENECK = 'dumbbell-router0:dumbbell-router1'


def allInterfaces(addresses):
    return list(addresses.getAllInterfaces().values())


class TestSubnetPool(unittest.TestCase):
    def test_classful_prefix_len(self):
        self.assertEqual(8, classfulPrefixLen(ipaddress.ip_address('10.1.1.0')))
        self.assertEqual(16, classfulPrefixLen(
            ipaddress.ip_address('172.16.0.0')))
        self.assertEqual(24, classfulPrefixLen(
            ipaddress.ip_address('192.168.1.0')))
        with self.assertRaises(ConfigurationError):
            classfulPrefixLen(ipaddress.ip_address('224.0.0.1'))

    def test_pool_advances_one_block(self):
        pool = SubnetPool('left', LEFT_BASE)
        self.assertEqual(ipaddress.ip_network('10.1.1.0/24'), pool.next())
        self.assertEqual(ipaddress.ip_network('10.1.2.0/24'), pool.next())
        self.assertEqual(ipaddress.ip_network('10.1.3.0/24'), pool.next())

    def test_pool_capacity(self):
        # 10.255.250.0/24 .. 10.255.255.0/24 before leaving 10.0.0.0/8.
        pool = SubnetPool('left', '10.255.250.0/24')
        self.assertEqual(6, pool.capacity())
        for _ in range(6):
            pool.next()
        self.assertEqual(0, pool.capacity())
        with self.assertRaises(AddressSpaceExhausted):
            pool.next()
        # A class C base holds a single /24.
        self.assertEqual(1, SubnetPool('router', '192.168.1.0/24').capacity())
        self.assertEqual(64, SubnetPool('router', '192.168.1.0/30').capacity())

    def test_invalid_base(self):
        for base in ['10.1.1.5/24', 'not-a-prefix', '10.1.1.0/31',
                     '224.0.0.0/24', '127.0.0.0/24']:
            with self.assertRaises(ConfigurationError):
                SubnetPool('left', base)


class TestAllocate(unittest.TestCase):
    def test_scenario_b_subnets(self):
        topo = generateDumbbell(20, 20, 10, 10)
        addresses = allocate(topo, ROUTER_BASE, LEFT_BASE, RIGHT_BASE)
        self.assertEqual(41, addresses.numSubnets())
        self.assertEqual(ipaddress.ip_network('10.3.1.0/24'),
                         addresses.subnetOf(BOTTLENECK))
        for side, octet in [(Role.LEFT_LEAF, 1), (Role.RIGHT_LEAF, 2)]:
            for leaf in topo.getLeaves(side):
                link = topo.findAccessLinkOfLeaf(leaf.name)
                self.assertEqual(
                    ipaddress.ip_network(f'10.{octet}.{leaf.index + 1}.0/24'),
                    addresses.subnetOf(link.name))

    def test_endpoint_addresses(self):
        topo = generateDumbbell(6, 6, 3, 3)
        addresses = allocate(topo, ROUTER_BASE, LEFT_BASE, RIGHT_BASE)
        # Router 0 takes the first address of the bottleneck subnet.
        self.assertEqual(ipaddress.ip_interface('10.3.1.1/24'),
                         addresses.addressOf('dumbbell-router0', BOTTLENECK))
        self.assertEqual(ipaddress.ip_interface('10.3.1.2/24'),
                         addresses.addressOf('dumbbell-router1', BOTTLENECK))
        # Leaf first, router second.
        leaf = topo.getLeaf(Role.RIGHT_LEAF, 4)
        link = topo.findAccessLinkOfLeaf(leaf.name)
        self.assertEqual(ipaddress.ip_interface('10.2.5.1/24'),
                         addresses.addressOf(leaf.name, link.name))
        self.assertEqual(ipaddress.ip_interface('10.2.5.2/24'),
                         addresses.addressOf('dumbbell-router1', link.name))
        self.assertEqual((leaf.name, link.name),
                         addresses.findOwnerOfAddress('10.2.5.1'))
        self.assertEqual(None, addresses.findOwnerOfAddress('10.2.5.3'))
        self.assertEqual(None, addresses.addressOf(leaf.name, BOTTLENECK))

    def test_global_uniqueness(self):
        for counts in [(1, 1, 0, 0), (6, 6, 3, 3), (4, 6, 2, 3),
                       (20, 20, 10, 10)]:
            topo = generateDumbbell(*counts)
            addresses = allocate(topo, ROUTER_BASE, LEFT_BASE, RIGHT_BASE)
            ifaces = allInterfaces(addresses)
            self.assertEqual(2 * topo.numLinks(), len(ifaces))
            self.assertEqual(len(ifaces), len({i.ip for i in ifaces}))
            subnets = list(addresses.getAllSubnets().values())
            for i, a in enumerate(subnets):
                for b in subnets[i + 1:]:
                    self.assertFalse(a.overlaps(b))
            # Each endpoint address sits in its link subnet.
            for (node, link), iface in addresses.getAllInterfaces().items():
                self.assertIn(iface.ip, addresses.subnetOf(link))

    def test_reproducible(self):
        topo1 = generateDumbbell(6, 6, 3, 3)
        topo2 = generateDumbbell(6, 6, 3, 3)
        a1 = allocate(topo1, ROUTER_BASE, LEFT_BASE, RIGHT_BASE)
        a2 = allocate(topo2, ROUTER_BASE, LEFT_BASE, RIGHT_BASE)
        self.assertEqual(list(a1.getAllInterfaces().items()),
                         list(a2.getAllInterfaces().items()))
        self.assertEqual(list(a1.getAllSubnets().items()),
                         list(a2.getAllSubnets().items()))

    def test_custom_prefix_length(self):
        topo = generateDumbbell(3, 1, 0, 0)
        addresses = allocate(topo, '10.3.1.0/30', '10.1.1.0/30', '10.2.1.0/30')
        leaf = topo.getLeaf(Role.LEFT_LEAF, 2)
        link = topo.findAccessLinkOfLeaf(leaf.name)
        self.assertEqual(ipaddress.ip_network('10.1.1.8/30'),
                         addresses.subnetOf(link.name))
        self.assertEqual(ipaddress.ip_interface('10.1.1.9/30'),
                         addresses.addressOf(leaf.name, link.name))

    def test_address_space_exhausted(self):
        topo = generateDumbbell(6, 6, 3, 3)
        with self.assertRaises(AddressSpaceExhausted):
            allocate(topo, ROUTER_BASE, '10.255.251.0/24', RIGHT_BASE)
        with self.assertRaises(AddressSpaceExhausted):
            allocate(topo, ROUTER_BASE, LEFT_BASE, '192.168.1.0/24')
        # A class C base is enough for the single bottleneck subnet.
        addresses = allocate(topo, '192.168.1.0/24', LEFT_BASE, RIGHT_BASE)
        self.assertEqual(ipaddress.ip_network('192.168.1.0/24'),
                         addresses.subnetOf(BOTTLENECK))

    def test_pools_run_into_each_other(self):
        # 257 left subnets from 10.1.1.0/24 reach 10.2.1.0/24.
        topo = generateDumbbell(257, 1, 0, 0)
        with self.assertRaises(AddressSpaceExhausted):
            allocate(topo, ROUTER_BASE, LEFT_BASE, RIGHT_BASE)
        # Same base for two pools.
        topo = generateDumbbell(1, 1, 0, 0)
        with self.assertRaises(AddressSpaceExhausted):
            allocate(topo, ROUTER_BASE, LEFT_BASE, LEFT_BASE)

if __name__ == "__main__":
    unittest.main()
