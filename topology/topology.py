from enum import Enum

from common.common import PRINTERR
from common.errors import ConfigurationError


class Role(Enum):
    '''
    Role of a node in the dumbbell.
    '''
    ROUTER = 'router'
    LEFT_LEAF = 'left'
    RIGHT_LEAF = 'right'


class Node:
    '''
    A node represents a simulation endpoint: one of the two routers or a leaf.
    name: node name
    role: Role of the node.
    index: index of the node among the nodes of the same role.
    '''
    def __init__(self, name, role, index):
        self.name = name
        self.role = role
        self.index = index
        # links attached to this node.
        self._member_links = []

    def addMember(self, link):
        self._member_links.append(link)

    def getLinks(self):
        return tuple(self._member_links)

    def isLeaf(self):
        return self.role != Role.ROUTER

    def __repr__(self):
        return f'Node({self.name})'


class Link:
    '''
    A link represents a point-to-point (bidi) link between 2 nodes.
    name: link name
    src: first endpoint, receives the first address of the link subnet.
    dst: second endpoint, receives the second address of the link subnet.
    link_class: LinkClass the link is parametrized with.
    '''
    def __init__(self, name, src, dst, link_class):
        self.name = name
        self.src = src
        self.dst = dst
        self.link_class = link_class

    def endpoints(self):
        return (self.src, self.dst)

    def peerOf(self, node):
        '''
        Returns the node at the other end of the link.
        '''
        if node is self.src:
            return self.dst
        if node is self.dst:
            return self.src
        return None

    def __repr__(self):
        return f'Link({self.name}, {self.link_class.name})'


class Topology:
    '''
    Topology class that represents a dumbbell network: two routers joined by a
    bottleneck link, each router the center of a star of leaves. Entities are
    kept in insertion order, so leaf i of a side is always the i-th leaf added
    to that side.
    '''
    def __init__(self, name):
        self.name = name
        self._nodes = {}
        self._links = {}
        self._routers = []
        self._leaves = {
            Role.LEFT_LEAF: [],
            Role.RIGHT_LEAF: []
        }
        # A map from leaf name to its access link.
        self._access_links = {}
        self._bottleneck = None

    def addNode(self, role, index):
        '''
        Adds a node of the given role. `index` must equal the number of nodes
        already added with that role.
        '''
        group = self._routers if role == Role.ROUTER else self._leaves[role]
        if index != len(group):
            raise ConfigurationError(f'addNode: {role.value} index {index} '
                                     f'out of order, expects {len(group)}.')
        node = Node(f'{self.name}-{role.value}{index}', role, index)
        group.append(node)
        self._nodes[node.name] = node
        return node

    def addLink(self, src, dst, link_class):
        '''
        Adds a link between two existing nodes. A link between two routers is
        the bottleneck; any other link must join a leaf (src) to a router
        (dst).
        '''
        name = f'{src.name}:{dst.name}'
        if name in self._links:
            raise ConfigurationError(f'addLink: link {name} already exists.')
        if src.role == Role.ROUTER and dst.role == Role.ROUTER:
            if self._bottleneck:
                raise ConfigurationError(f'addLink: routers already joined by '
                                         f'{self._bottleneck.name}.')
        elif not src.isLeaf() or dst.isLeaf():
            raise ConfigurationError(f'addLink: {name} must join a leaf to a '
                                     f'router.')
        elif src.name in self._access_links:
            raise ConfigurationError(f'addLink: leaf {src.name} already has '
                                     f'an access link.')
        link = Link(name, src, dst, link_class)
        self._links[name] = link
        src.addMember(link)
        dst.addMember(link)
        if src.isLeaf():
            self._access_links[src.name] = link
        else:
            self._bottleneck = link
        return link

    def numNodes(self):
        '''
        Returns number of nodes in this topology.
        '''
        return len(self._nodes)

    def numLinks(self):
        '''
        Returns number of links in this topology.
        '''
        return len(self._links)

    def numLeaves(self, role):
        return len(self._leaves[role])

    def getAllNodes(self):
        '''
        Returns all nodes: routers first, then left leaves, then right leaves.
        '''
        return tuple(self._routers + self._leaves[Role.LEFT_LEAF] +
                     self._leaves[Role.RIGHT_LEAF])

    def getAllLinks(self):
        '''
        Returns all links in insertion order.
        '''
        return tuple(self._links.values())

    def getRouters(self):
        return tuple(self._routers)

    def getLeaves(self, role):
        '''
        Returns the leaves of the given side, ordered by index.
        '''
        if role not in self._leaves:
            PRINTERR(f'getLeaves: {role} is not a leaf role.')
            return None
        return tuple(self._leaves[role])

    def getLeaf(self, role, index):
        leaves = self.getLeaves(role)
        if leaves is None or index < 0 or index >= len(leaves):
            PRINTERR(f'getLeaf: no {role} leaf with index {index}.')
            return None
        return leaves[index]

    def getNodeByName(self, node_name):
        '''
        Looks up the node object of the given node name.
        '''
        if node_name not in self._nodes:
            PRINTERR(f'getNodeByName: Input node {node_name} does not exist in '
                     f'this topology!')
            return None
        return self._nodes[node_name]

    def getLinkByName(self, link_name):
        '''
        Looks up the link object of the given link name.
        '''
        if link_name not in self._links:
            PRINTERR(f'getLinkByName: Input link {link_name} does not exist in '
                     f'this topology!')
            return None
        return self._links[link_name]

    def getBottleneckLink(self):
        return self._bottleneck

    def findAccessLinkOfLeaf(self, leaf_name):
        '''
        Returns the link joining the given leaf to its router.
        '''
        if leaf_name not in self._access_links:
            PRINTERR(f'findAccessLinkOfLeaf: {leaf_name} is not a leaf of '
                     f'this topology!')
            return None
        return self._access_links[leaf_name]

    def findRouterOfLeaf(self, leaf_name):
        link = self.findAccessLinkOfLeaf(leaf_name)
        return link.dst if link else None

    def degreeOf(self, node_name):
        '''
        Returns the number of links attached to the given node, -1 if the node
        does not exist.
        '''
        node = self.getNodeByName(node_name)
        if not node:
            return -1
        return len(node.getLinks())
