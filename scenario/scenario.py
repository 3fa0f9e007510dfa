import ipaddress
from dataclasses import dataclass, field
from typing import Optional, Tuple

from google.protobuf import text_format

import common.flags as FLAG
import schema.scenario as scenario_pb2
from addressing.subnet_alloc import AddressAssignment, allocate
from common.common import PRINTERR, PRINTV
from common.errors import ScenarioInstallError
from sim.engine import SimEngine
from topology.linkclass import LinkClassCatalog, defaultCatalog
from topology.topogen import generateDumbbell
from topology.topology import Topology
from traffic.tmgen import generate
from traffic.traffic import Flow, RandomVariable


def loadScenario(filepath):
    if not filepath:
        return None
    scenario = scenario_pb2.Scenario()
    with open(filepath, 'r', encoding='utf-8') as f:
        text_format.Parse(f.read(), scenario)
    return scenario

def dumpScenario(scenario, filepath):
    '''
    Writes the textproto of `scenario` to `filepath`.
    '''
    with open(filepath, 'w', encoding='utf-8') as f:
        f.write(text_format.MessageToString(toProto(scenario)))


@dataclass(frozen=True)
class ScenarioParams:
    '''
    All operator-facing parameters of a dumbbell scenario.
    '''
    left_count: int = 6
    right_count: int = 6
    left_long_count: int = 3
    right_long_count: int = 3
    router_base: str = '10.3.1.0/24'
    left_base: str = '10.1.1.0/24'
    right_base: str = '10.2.1.0/24'
    port: int = 1000
    active_window: Tuple[float, float] = (0.0, 10.0)
    on_time: Tuple = ('uniform', (0.0, 1.0))
    off_time: Tuple = ('uniform', (0.0, 1.0))
    seed: Optional[int] = 1
    mapping: str = 'wrap'
    data_rate: int = 500 * 1000
    packet_size: int = 512
    protocol: str = 'tcp'
    netname: str = 'dumbbell'
    # None means the catalog built from flags.
    catalog: Optional[LinkClassCatalog] = None

    @classmethod
    def fromFlags(cls):
        '''
        Builds the parameters from the current values of common.flags.
        '''
        return cls(left_count=FLAG.LEFT_COUNT,
                   right_count=FLAG.RIGHT_COUNT,
                   left_long_count=FLAG.LEFT_LONG_COUNT,
                   right_long_count=FLAG.RIGHT_LONG_COUNT,
                   router_base=FLAG.ROUTER_BASE,
                   left_base=FLAG.LEFT_BASE,
                   right_base=FLAG.RIGHT_BASE,
                   port=FLAG.PORT,
                   active_window=(FLAG.START_TIME, FLAG.STOP_TIME),
                   on_time=FLAG.ON_TIME,
                   off_time=FLAG.OFF_TIME,
                   seed=FLAG.SEED,
                   mapping=FLAG.FLOW_MAPPING,
                   data_rate=FLAG.DATA_RATE,
                   packet_size=FLAG.PACKET_SIZE,
                   protocol=FLAG.PROTOCOL,
                   netname=FLAG.NETNAME,
                   catalog=defaultCatalog())


@dataclass(frozen=True)
class Scenario:
    '''
    A fully built dumbbell scenario, handed read-only to a simulation engine.
    '''
    params: ScenarioParams
    catalog: LinkClassCatalog
    topology: Topology
    addresses: AddressAssignment
    flows: Tuple[Flow, ...] = field(default=())


def buildScenario(params=None):
    '''
    Runs the build pipeline: topology, then addresses, then flows. Any error
    aborts the build and propagates; no partial scenario is returned.

    params: ScenarioParams, defaults to ScenarioParams.fromFlags().
    '''
    params = params if params else ScenarioParams.fromFlags()
    catalog = params.catalog if params.catalog else defaultCatalog()
    topo = generateDumbbell(params.left_count, params.right_count,
                            params.left_long_count, params.right_long_count,
                            catalog=catalog, netname=params.netname)
    addresses = allocate(topo, params.router_base, params.left_base,
                         params.right_base)
    flows = generate(topo, addresses, params.port, params.active_window,
                     on_time=params.on_time, off_time=params.off_time,
                     seed=params.seed, mapping=params.mapping,
                     data_rate=params.data_rate,
                     packet_size=params.packet_size, protocol=params.protocol)
    return Scenario(params, catalog, topo, addresses, flows)

def installScenario(engine: SimEngine, scenario: Scenario):
    '''
    Pushes `scenario` into `engine`: nodes, links and addresses first, then
    routes (once), then flows. Returns a map from node name to engine handle.

    Raises ScenarioInstallError if the engine hands out addresses different
    from the scenario's assignment. The engine is destroyed before raising,
    so it holds nothing of the partial install.
    '''
    topo, addresses = scenario.topology, scenario.addresses
    handles = {}
    for node in topo.getAllNodes():
        handles[node.name] = engine.createNode(node.name)
    for link in topo.getAllLinks():
        link_handle = engine.createLink(handles[link.src.name],
                                        handles[link.dst.name],
                                        link.link_class)
        got = engine.assignAddress(link_handle, addresses.subnetOf(link.name))
        expected = (addresses.addressOf(link.src.name, link.name),
                    addresses.addressOf(link.dst.name, link.name))
        if tuple(got) != expected:
            msg = (f'engine assigned {got} to {link.name}, expects '
                   f'{expected}.')
            PRINTERR(msg)
            engine.destroy()
            raise ScenarioInstallError(msg)
    engine.populateRoutingTables()
    for flow in scenario.flows:
        engine.scheduleFlow(flow)
    PRINTV(1, f'Installed {topo.numNodes()} nodes, {topo.numLinks()} links '
              f'and {len(scenario.flows)} flows.')
    return handles

def toProto(scenario):
    '''
    Returns the Scenario proto of a built scenario.
    '''
    proto = scenario_pb2.Scenario()
    proto.name = scenario.topology.name
    if scenario.params.seed is not None:
        proto.seed = scenario.params.seed
    for link_class in scenario.catalog.getAll():
        lc = proto.link_classes.add()
        lc.name = link_class.name
        lc.data_rate_bps = link_class.data_rate
        lc.delay_sec = link_class.delay
    for node in scenario.topology.getAllNodes():
        n = proto.nodes.add()
        n.name = node.name
        n.role = scenario_pb2.ROLES.index(node.role.name)
        n.index = node.index
    for link in scenario.topology.getAllLinks():
        l = proto.links.add()
        l.name = link.name
        l.src = link.src.name
        l.dst = link.dst.name
        l.link_class = link.link_class.name
        l.subnet = str(scenario.addresses.subnetOf(link.name))
        l.src_address = str(scenario.addresses.addressOf(link.src.name,
                                                         link.name))
        l.dst_address = str(scenario.addresses.addressOf(link.dst.name,
                                                         link.name))
    for flow in scenario.flows:
        f = proto.flows.add()
        f.name = flow.name
        f.src = flow.src
        f.dst = flow.dst
        f.dst_address = str(flow.dst_address)
        f.dst_port = flow.dst_port
        f.on_time.kind = flow.on_time.kind
        f.on_time.params.extend(flow.on_time.params)
        f.off_time.kind = flow.off_time.kind
        f.off_time.params.extend(flow.off_time.params)
        f.start_sec = flow.start_time
        f.stop_sec = flow.stop_time
        for start, end in flow.on_periods:
            period = f.on_periods.add()
            period.start_sec = start
            period.end_sec = end
        f.data_rate_bps = flow.data_rate
        f.packet_size = flow.packet_size
        f.protocol = flow.protocol
    return proto

def flowsFromProto(proto):
    '''
    Rebuilds the Flow tuple of a Scenario proto.
    '''
    flows = []
    for f in proto.flows:
        flows.append(Flow(name=f.name, src=f.src, dst=f.dst,
                          dst_address=ipaddress.IPv4Address(f.dst_address),
                          dst_port=f.dst_port,
                          on_time=RandomVariable(f.on_time.kind,
                                                 tuple(f.on_time.params)),
                          off_time=RandomVariable(f.off_time.kind,
                                                  tuple(f.off_time.params)),
                          start_time=f.start_sec,
                          stop_time=f.stop_sec,
                          on_periods=tuple((p.start_sec, p.end_sec)
                                           for p in f.on_periods),
                          data_rate=f.data_rate_bps,
                          packet_size=f.packet_size,
                          protocol=f.protocol))
    return tuple(flows)
