import csv
import ipaddress
import re
import tempfile
import unittest
from pathlib import Path

import common.flags as FLAG
import schema.scenario as scenario_pb2
from common.errors import (AddressSpaceExhausted, ConfigurationError,
                           FlowMappingError)
from e2e.run import runScenario
from scenario.scenario import (ScenarioParams, buildScenario, dumpScenario,
                               flowsFromProto, loadScenario, toProto)
from topology.topology import Role

TINY_PATH = str(Path(__file__).parent / 'data' / 'tiny_scenario.textproto')
TINY_PARAMS = ScenarioParams(left_count=1, right_count=1, left_long_count=0,
                             right_long_count=0, netname='tiny',
                             active_window=(0.0, 2.0))
PROTO_PATH = Path(scenario_pb2.__file__).parent / 'scenario.proto'

MESSAGE_RE = re.compile(r'^message (\w+) \{')
ENUM_RE = re.compile(r'^\s+enum (\w+) \{')
ENUM_VALUE_RE = re.compile(r'^\s+(\w+) = (\d+);')
FIELD_RE = re.compile(r'^\s+(repeated |optional )?(\w+) (\w+) = (\d+);')

SCALAR_TYPES = {
    scenario_pb2.STRING: 'string',
    scenario_pb2.INT32: 'int32',
    scenario_pb2.INT64: 'int64',
    scenario_pb2.DOUBLE: 'double',
}


def parseProtoFile(path):
    '''
    Reads the messages and enums declared in a .proto file. Returns
    ({message: [(number, name, type, label)]}, {enum: [(value, number)]}).
    '''
    messages, enums = {}, {}
    msg = enum = None
    with open(path) as f:
        for line in f:
            line = line.split('//')[0].rstrip()
            match = MESSAGE_RE.match(line)
            if match:
                msg = match.group(1)
                messages[msg] = []
                continue
            match = ENUM_RE.match(line)
            if match:
                enum = f'{msg}.{match.group(1)}'
                enums[enum] = []
                continue
            if enum:
                if line.strip() == '}':
                    enum = None
                elif ENUM_VALUE_RE.match(line):
                    name, number = ENUM_VALUE_RE.match(line).groups()
                    enums[enum].append((name, int(number)))
                continue
            match = FIELD_RE.match(line)
            if match:
                label, ftype, name, number = match.groups()
                messages[msg].append((int(number), name, ftype,
                                      (label or '').strip()))
    return messages, enums

def describeFile(file_proto):
    '''
    Same as parseProtoFile() but reads a FileDescriptorProto.
    '''
    messages, enums = {}, {}
    for msg in file_proto.message_type:
        messages[msg.name] = []
        for field in msg.field:
            if field.type_name:
                ftype = field.type_name.split('.')[-1]
            else:
                ftype = SCALAR_TYPES[field.type]
            if field.label == field.LABEL_REPEATED:
                label = 'repeated'
            elif field.proto3_optional:
                label = 'optional'
            else:
                label = ''
            messages[msg.name].append((field.number, field.name, ftype,
                                       label))
        for enum in msg.enum_type:
            enums[f'{msg.name}.{enum.name}'] = [(v.name, v.number)
                                                for v in enum.value]
    return messages, enums


class TestBuildScenario(unittest.TestCase):
    def test_default_scenario(self):
        scenario = buildScenario(ScenarioParams())
        self.assertEqual(14, scenario.topology.numNodes())
        self.assertEqual(13, scenario.topology.numLinks())
        self.assertEqual(13, scenario.addresses.numSubnets())
        self.assertEqual(6, len(scenario.flows))
        for k, flow in enumerate(scenario.flows):
            self.assertEqual(ipaddress.ip_address(f'10.1.{k + 1}.1'),
                             flow.dst_address)
            self.assertEqual(1000, flow.dst_port)

    def test_reproducible(self):
        proto1 = toProto(buildScenario(ScenarioParams(seed=3)))
        proto2 = toProto(buildScenario(ScenarioParams(seed=3)))
        self.assertEqual(proto1.SerializeToString(deterministic=True),
                         proto2.SerializeToString(deterministic=True))
        proto3 = toProto(buildScenario(ScenarioParams(seed=4)))
        self.assertNotEqual(proto1, proto3)

    def test_fail_fast(self):
        with self.assertRaises(ConfigurationError):
            buildScenario(ScenarioParams(left_long_count=7))
        with self.assertRaises(AddressSpaceExhausted):
            buildScenario(ScenarioParams(left_base='192.168.1.0/24'))
        with self.assertRaises(FlowMappingError):
            buildScenario(ScenarioParams(left_count=4, right_count=6,
                                         left_long_count=2,
                                         right_long_count=3,
                                         mapping='strict'))
        with self.assertRaises(ConfigurationError):
            buildScenario(ScenarioParams(on_time=('uniform', (1.0, 0.0))))


class TestScenarioFlags(unittest.TestCase):
    def setUp(self):
        self.saved = (FLAG.LEFT_COUNT, FLAG.LEFT_LONG_COUNT, FLAG.PORT,
                      FLAG.VERBOSE)
        FLAG.VERBOSE = 0

    def tearDown(self):
        (FLAG.LEFT_COUNT, FLAG.LEFT_LONG_COUNT, FLAG.PORT,
         FLAG.VERBOSE) = self.saved

    def test_from_flags(self):
        FLAG.LEFT_COUNT = 8
        FLAG.LEFT_LONG_COUNT = 2
        FLAG.PORT = 9000
        scenario = buildScenario()
        self.assertEqual(8, scenario.topology.numLeaves(Role.LEFT_LEAF))
        self.assertEqual(6, len(scenario.flows))
        self.assertEqual({9000}, {flow.dst_port for flow in scenario.flows})


class TestScenarioProto(unittest.TestCase):
    def test_load_invalid_scenario(self):
        self.assertEqual(None, loadScenario(''))

    def test_load_tiny_scenario(self):
        tiny = loadScenario(TINY_PATH)
        self.assertEqual('tiny', tiny.name)
        self.assertEqual(4, len(tiny.nodes))
        self.assertEqual(3, len(tiny.links))
        self.assertEqual(scenario_pb2.ROLES.index('RIGHT_LEAF'),
                         tiny.nodes[3].role)
        flows = flowsFromProto(tiny)
        self.assertEqual(1, len(flows))
        self.assertEqual(((0.25, 1.0), (1.5, 2.0)), flows[0].on_periods)
        self.assertEqual(1.25, flows[0].onDuration())
        self.assertEqual(ipaddress.ip_address('10.1.1.1'),
                         flows[0].dst_address)

    def test_built_matches_fixture(self):
        built = toProto(buildScenario(TINY_PARAMS))
        tiny = loadScenario(TINY_PATH)
        self.assertEqual(list(tiny.link_classes), list(built.link_classes))
        self.assertEqual(list(tiny.nodes), list(built.nodes))
        self.assertEqual(list(tiny.links), list(built.links))
        self.assertEqual(tiny.seed, built.seed)

    def test_dump_and_load(self):
        scenario = buildScenario(ScenarioParams(left_count=4, right_count=6,
                                                left_long_count=2,
                                                right_long_count=3))
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / 'scenario.textproto'
            dumpScenario(scenario, path)
            loaded = loadScenario(path)
        self.assertEqual(toProto(scenario), loaded)
        self.assertEqual(scenario.flows, flowsFromProto(loaded))


class TestScenarioSchema(unittest.TestCase):
    def test_registered_schema_matches_proto_file(self):
        messages, enums = parseProtoFile(PROTO_PATH)
        self.assertEqual(7, len(messages))
        self.assertEqual(['ROLE_UNSPECIFIED', 'ROUTER', 'LEFT_LEAF',
                          'RIGHT_LEAF'], [v for v, _ in enums['Node.Role']])
        self.assertEqual((messages, enums),
                         describeFile(scenario_pb2._buildFile()))

    def test_seed_presence(self):
        seeded = toProto(buildScenario(ScenarioParams(seed=0)))
        self.assertTrue(seeded.HasField('seed'))
        self.assertEqual(0, seeded.seed)
        unseeded = toProto(buildScenario(ScenarioParams(seed=None)))
        self.assertFalse(unseeded.HasField('seed'))
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / 'scenario.textproto'
            dumpScenario(buildScenario(ScenarioParams(seed=0)), path)
            self.assertTrue(loadScenario(path).HasField('seed'))
            dumpScenario(buildScenario(ScenarioParams(seed=None)), path)
            self.assertFalse(loadScenario(path).HasField('seed'))


class TestEndToEnd(unittest.TestCase):
    def test_run_scenario(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            engine = runScenario(tmpdir, ScenarioParams())
            self.assertEqual(10.0, engine.now)
            self.assertTrue((Path(tmpdir) / 'scenario.textproto').exists())
            with (Path(tmpdir) / 'flows.csv').open() as f:
                rows = list(csv.reader(f))
            with (Path(tmpdir) / 'links.csv').open() as f:
                links = list(csv.reader(f))
        # Header plus one row per flow / link.
        self.assertEqual(7, len(rows))
        self.assertEqual(14, len(links))
        for row in rows[1:]:
            self.assertEqual(row[5], row[6])
            self.assertEqual('3', row[7])

if __name__ == "__main__":
    unittest.main()
