'''
Protobuf message classes of the scenario schema. The schema is the one in
scenario.proto; it is registered with the protobuf runtime from the
descriptor built below, so no protoc step is needed. The table below carries
the field numbers of scenario.proto explicitly.
'''
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = 'dumbbell'

_F = descriptor_pb2.FieldDescriptorProto
STRING, INT32, INT64, DOUBLE = (_F.TYPE_STRING, _F.TYPE_INT32, _F.TYPE_INT64,
                                _F.TYPE_DOUBLE)
MESSAGE, ENUM = _F.TYPE_MESSAGE, _F.TYPE_ENUM

# Message name -> [(field number, field name, type, label, type name)].
# label is None for plain singular fields, 'repeated' or 'optional'.
_MESSAGES = {
    'LinkClass': [
        (1, 'name', STRING, None, None),
        (2, 'data_rate_bps', INT64, None, None),
        (3, 'delay_sec', DOUBLE, None, None),
    ],
    'Node': [
        (1, 'name', STRING, None, None),
        (2, 'role', ENUM, None, 'Node.Role'),
        (3, 'index', INT32, None, None),
    ],
    'Link': [
        (1, 'name', STRING, None, None),
        (2, 'src', STRING, None, None),
        (3, 'dst', STRING, None, None),
        (4, 'link_class', STRING, None, None),
        (5, 'subnet', STRING, None, None),
        (6, 'src_address', STRING, None, None),
        (7, 'dst_address', STRING, None, None),
    ],
    'RandomVariable': [
        (1, 'kind', STRING, None, None),
        (2, 'params', DOUBLE, 'repeated', None),
    ],
    'Period': [
        (1, 'start_sec', DOUBLE, None, None),
        (2, 'end_sec', DOUBLE, None, None),
    ],
    'Flow': [
        (1, 'name', STRING, None, None),
        (2, 'src', STRING, None, None),
        (3, 'dst', STRING, None, None),
        (4, 'dst_address', STRING, None, None),
        (5, 'dst_port', INT32, None, None),
        (6, 'on_time', MESSAGE, None, 'RandomVariable'),
        (7, 'off_time', MESSAGE, None, 'RandomVariable'),
        (8, 'start_sec', DOUBLE, None, None),
        (9, 'stop_sec', DOUBLE, None, None),
        (10, 'on_periods', MESSAGE, 'repeated', 'Period'),
        (11, 'data_rate_bps', INT64, None, None),
        (12, 'packet_size', INT32, None, None),
        (13, 'protocol', STRING, None, None),
    ],
    'Scenario': [
        (1, 'name', STRING, None, None),
        (2, 'link_classes', MESSAGE, 'repeated', 'LinkClass'),
        (3, 'nodes', MESSAGE, 'repeated', 'Node'),
        (4, 'links', MESSAGE, 'repeated', 'Link'),
        (5, 'flows', MESSAGE, 'repeated', 'Flow'),
        (6, 'seed', INT64, 'optional', None),
    ],
}

# Values of Node.Role.
ROLES = ['ROLE_UNSPECIFIED', 'ROUTER', 'LEFT_LEAF', 'RIGHT_LEAF']


def _buildFile():
    '''
    Returns the FileDescriptorProto equivalent to scenario.proto.
    '''
    file_proto = descriptor_pb2.FileDescriptorProto()
    file_proto.name = f'{PACKAGE}/scenario.proto'
    file_proto.package = PACKAGE
    file_proto.syntax = 'proto3'
    for msg_name, fields in _MESSAGES.items():
        msg = file_proto.message_type.add()
        msg.name = msg_name
        for number, name, ftype, label, type_name in fields:
            field = msg.field.add()
            field.name = name
            field.number = number
            field.type = ftype
            field.label = (_F.LABEL_REPEATED if label == 'repeated' else
                           _F.LABEL_OPTIONAL)
            if type_name:
                field.type_name = f'.{PACKAGE}.{type_name}'
            if label == 'optional':
                # proto3 optional fields live in a synthetic oneof `_<name>`.
                field.proto3_optional = True
                field.oneof_index = len(msg.oneof_decl)
                msg.oneof_decl.add(name=f'_{name}')
        if msg_name == 'Node':
            enum = msg.enum_type.add()
            enum.name = 'Role'
            for number, value in enumerate(ROLES):
                enum.value.add(name=value, number=number)
    return file_proto


descriptor_pool.Default().AddSerializedFile(_buildFile().SerializeToString())

def _messageClass(name):
    desc = descriptor_pool.Default().FindMessageTypeByName(f'{PACKAGE}.{name}')
    return message_factory.GetMessageClass(desc)

LinkClass = _messageClass('LinkClass')
Node = _messageClass('Node')
Link = _messageClass('Link')
RandomVariable = _messageClass('RandomVariable')
Period = _messageClass('Period')
Flow = _messageClass('Flow')
Scenario = _messageClass('Scenario')
