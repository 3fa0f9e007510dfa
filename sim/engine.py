import heapq
import ipaddress
from collections import deque
from dataclasses import dataclass, field
from typing import List

from common.common import PRINTERR, PRINTV


class SimEngine:
    '''
    Capability interface of a discrete-event simulation engine. A scenario is
    pushed into an engine by creating nodes and links, assigning addresses,
    computing routes once, scheduling flows and finally running the clock.
    '''
    def createNode(self, name):
        '''
        Creates a node, returns its handle.
        '''
        raise NotImplementedError

    def createLink(self, node_a, node_b, link_class):
        '''
        Creates a point-to-point link between two node handles, returns the
        link handle.
        '''
        raise NotImplementedError

    def assignAddress(self, link, subnet):
        '''
        Assigns the first two usable addresses of `subnet` to the endpoints of
        `link`. Returns the (node_a, node_b) interface addresses.
        '''
        raise NotImplementedError

    def populateRoutingTables(self):
        '''
        Computes the routing tables of all nodes. Called once after all links
        and addresses exist.
        '''
        raise NotImplementedError

    def scheduleFlow(self, flow):
        '''
        Puts the on/off periods of `flow` onto the timeline.
        '''
        raise NotImplementedError

    def run(self, stop_time=None):
        '''
        Executes events until none remain or `stop_time` is reached.
        '''
        raise NotImplementedError

    def reset(self):
        '''
        Drops all pending events and rewinds the clock to 0.
        '''
        raise NotImplementedError

    def destroy(self):
        '''
        Drops everything the engine holds: nodes, links, routes, flows and
        events. The engine can take a new scenario afterwards.
        '''
        raise NotImplementedError


class EngineNode:
    '''
    Node handle of the in-memory engine.
    name: node name.
    '''
    def __init__(self, name):
        self.name = name
        # A map from interface address to the link it sits on.
        self.interfaces = {}
        # Attached links in creation order.
        self.links = []
        # Routing table: a map from destination subnet to outgoing link.
        self.routes = {}

    def __repr__(self):
        return f'EngineNode({self.name})'


class EngineLink:
    '''
    Link handle of the in-memory engine.
    '''
    def __init__(self, name, node_a, node_b, link_class):
        self.name = name
        self.node_a = node_a
        self.node_b = node_b
        self.link_class = link_class
        self.subnet = None
        # Bytes carried over the link during the run.
        self.tx_bytes = 0

    def peerOf(self, node):
        return self.node_b if node is self.node_a else self.node_a

    def __repr__(self):
        return f'EngineLink({self.name})'


@dataclass
class FlowStats:
    '''
    Per-flow counters collected by the in-memory engine.
    '''
    name: str
    # Links traversed from source to destination, empty if unroutable.
    path: List[str] = field(default_factory=list)
    # Time spent in the on state, in seconds.
    on_time: float = 0.0
    tx_bytes: int = 0
    rx_bytes: int = 0


class InMemoryEngine(SimEngine):
    '''
    A minimal engine that keeps the scenario in memory. Routes are static
    shortest paths over the link graph. Running the clock replays every
    flow's on/off transitions in time order and accounts the bytes a flow
    offers at its data rate while on. There is no queuing, so received bytes
    equal sent bytes for any routable flow.
    '''
    def __init__(self):
        self._nodes = {}
        self._links = []
        self._flows = []
        self._events = []
        self._seq = 0
        self._routed = False
        self.now = 0.0
        # A map from flow name to FlowStats.
        self.stats = {}

    def createNode(self, name):
        if name in self._nodes:
            raise ValueError(f'node {name} already exists.')
        node = EngineNode(name)
        self._nodes[name] = node
        return node

    def createLink(self, node_a, node_b, link_class):
        link = EngineLink(f'{node_a.name}:{node_b.name}', node_a, node_b,
                          link_class)
        node_a.links.append(link)
        node_b.links.append(link)
        self._links.append(link)
        self._routed = False
        return link

    def assignAddress(self, link, subnet):
        subnet = ipaddress.IPv4Network(subnet)
        hosts = subnet.hosts()
        pair = []
        for node in (link.node_a, link.node_b):
            iface = ipaddress.IPv4Interface(f'{next(hosts)}/{subnet.prefixlen}')
            node.interfaces[iface.ip] = link
            pair.append(iface)
        link.subnet = subnet
        self._routed = False
        return tuple(pair)

    def getNode(self, name):
        return self._nodes.get(name)

    def getLinks(self):
        return tuple(self._links)

    def populateRoutingTables(self):
        '''
        For every node, runs a BFS over the link graph and routes each subnet
        through the first link on the shortest path towards it.
        '''
        subnets = [(link.subnet, link) for link in self._links if link.subnet]
        for src in self._nodes.values():
            src.routes = {}
            # A map from reached node to the first link taken from src.
            first_hop = {src.name: None}
            queue = deque([src])
            while queue:
                node = queue.popleft()
                for link in node.links:
                    peer = link.peerOf(node)
                    if peer.name in first_hop:
                        continue
                    first_hop[peer.name] = first_hop[node.name] or link
                    queue.append(peer)
            for subnet, link in subnets:
                # A directly attached subnet is reached via its own link.
                if link.node_a is src or link.node_b is src:
                    src.routes[subnet] = link
                elif link.node_a.name in first_hop:
                    src.routes[subnet] = first_hop[link.node_a.name]
        self._routed = True
        PRINTV(1, f'Routing tables populated for {len(self._nodes)} nodes.')

    def lookupRoute(self, node, addr):
        '''
        Returns the outgoing link of `node` towards `addr`, None if there is
        no route. Longest prefix wins.
        '''
        best = None
        for subnet, link in node.routes.items():
            if addr in subnet and (not best or
                                   subnet.prefixlen > best[0].prefixlen):
                best = (subnet, link)
        return best[1] if best else None

    def tracePath(self, src_name, addr):
        '''
        Follows the routing tables from the named node towards `addr`.
        Returns the list of links traversed, None if unroutable.
        '''
        node = self._nodes.get(src_name)
        if not node:
            return None
        addr = ipaddress.IPv4Address(addr)
        path = []
        # A route never revisits a node on a loop-free table, bound the walk
        # by the number of nodes anyway.
        for _ in range(len(self._nodes)):
            if addr in node.interfaces:
                return path
            link = self.lookupRoute(node, addr)
            if not link:
                return None
            path.append(link)
            node = link.peerOf(node)
        if addr in node.interfaces:
            return path
        return None

    def _push(self, time, kind, flow_idx):
        heapq.heappush(self._events, (time, self._seq, kind, flow_idx))
        self._seq += 1

    def scheduleFlow(self, flow):
        if flow.src not in self._nodes:
            raise ValueError(f'flow {flow.name}: unknown source {flow.src}.')
        flow_idx = len(self._flows)
        self._flows.append(flow)
        self.stats[flow.name] = FlowStats(flow.name)
        for start, end in flow.on_periods:
            self._push(start, 'on', flow_idx)
            self._push(end, 'off', flow_idx)

    def _account(self, flow_idx, duration, path):
        flow = self._flows[flow_idx]
        nbytes = int(duration * flow.data_rate / 8)
        stats = self.stats[flow.name]
        stats.on_time += duration
        stats.tx_bytes += nbytes
        if path is None:
            return
        stats.rx_bytes += nbytes
        for link in path:
            link.tx_bytes += nbytes

    def run(self, stop_time=None):
        '''
        Replays scheduled events in time order. Returns the clock at the end.
        '''
        if not self._routed:
            PRINTERR('run: routing tables are not populated.')
            raise RuntimeError('routing tables must be populated before run.')
        paths = []
        for flow in self._flows:
            path = self.tracePath(flow.src, flow.dst_address)
            if path is None:
                PRINTERR(f'run: flow {flow.name} has no route to '
                         f'{flow.dst_address}.')
            else:
                self.stats[flow.name].path = [link.name for link in path]
            paths.append(path)
        # A map from flow index to the time it turned on.
        on_since = {}
        stopped = False
        while self._events:
            time, _, kind, flow_idx = self._events[0]
            if stop_time is not None and time > stop_time:
                stopped = True
                break
            heapq.heappop(self._events)
            self.now = time
            if kind == 'on':
                on_since[flow_idx] = time
            else:
                self._account(flow_idx, time - on_since.pop(flow_idx),
                              paths[flow_idx])
        if stopped:
            # Flows still on are accounted up to the stop time, events past
            # it are discarded.
            for flow_idx, since in on_since.items():
                self._account(flow_idx, stop_time - since, paths[flow_idx])
            self._events = []
        if stop_time is not None:
            self.now = max(self.now, stop_time)
        PRINTV(1, f'Simulation stopped at {self.now} s.')
        return self.now

    def reset(self):
        self._events = []
        self._flows = []
        self._seq = 0
        self.now = 0.0
        self.stats = {}
        for link in self._links:
            link.tx_bytes = 0

    def destroy(self):
        self.reset()
        self._nodes = {}
        self._links = []
        self._routed = False
