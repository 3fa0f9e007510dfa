from dataclasses import dataclass
from enum import Enum

import common.flags as FLAG
from common.common import PRINTERR
from common.errors import ConfigurationError
from topology.topology import Role


class LinkKind(Enum):
    '''
    Tags of the link classes known to the catalog.
    '''
    BOTTLENECK = 'bottleneck'
    LONG = 'long'
    SHORT = 'short'

@dataclass(frozen=True)
class LinkClass:
    '''
    A named set of link parameters.
    kind: LinkKind tag of this class.
    data_rate: link speed in bps.
    delay: one-way propagation delay in seconds.
    '''
    kind: LinkKind
    data_rate: int
    delay: float

    @property
    def name(self):
        return self.kind.value

    def __post_init__(self):
        if self.data_rate <= 0:
            raise ConfigurationError(f'link class {self.name}: data rate '
                                     f'{self.data_rate} must be positive.')
        if self.delay < 0:
            raise ConfigurationError(f'link class {self.name}: delay '
                                     f'{self.delay} cannot be negative.')


class LinkClassCatalog:
    '''
    Closed set of link classes used by the dumbbell. Routers are joined by the
    bottleneck class; access links are long or short depending on the leaf
    index.
    '''
    def __init__(self, bottleneck, long, short):
        self._classes = {
            LinkKind.BOTTLENECK: bottleneck,
            LinkKind.LONG: long,
            LinkKind.SHORT: short,
        }
        for kind, link_class in self._classes.items():
            if link_class.kind != kind:
                raise ConfigurationError(f'catalog slot {kind.value} holds a '
                                         f'{link_class.name} link class.')

    def get(self, kind):
        return self._classes[kind]

    def getAll(self):
        '''
        Returns all link classes in catalog order.
        '''
        return list(self._classes.values())

    def classFor(self, role, index, long_count, side_count):
        '''
        Returns the link class of the access link of a leaf.

        role: Role of the node owning the link. A router gets the bottleneck.
        index: index of the leaf within its side.
        long_count: number of leaves on this side with a long link. Leaves
                    [0, long_count) are long, the rest are short.
        side_count: number of leaves on this side.
        '''
        if role == Role.ROUTER:
            return self._classes[LinkKind.BOTTLENECK]
        if long_count < 0 or long_count > side_count:
            msg = (f'classFor: long count {long_count} must be within '
                   f'[0, {side_count}] for {role.value}.')
            PRINTERR(msg)
            raise ConfigurationError(msg)
        if index < 0 or index >= side_count:
            msg = (f'classFor: {role.value} index {index} out of range '
                   f'[0, {side_count}).')
            PRINTERR(msg)
            raise ConfigurationError(msg)
        if index < long_count:
            return self._classes[LinkKind.LONG]
        return self._classes[LinkKind.SHORT]


def defaultCatalog():
    '''
    Builds the catalog from the link class flags.
    '''
    return LinkClassCatalog(
        LinkClass(LinkKind.BOTTLENECK, FLAG.BOTTLENECK_RATE,
                  FLAG.BOTTLENECK_DELAY),
        LinkClass(LinkKind.LONG, FLAG.LONG_RATE, FLAG.LONG_DELAY),
        LinkClass(LinkKind.SHORT, FLAG.SHORT_RATE, FLAG.SHORT_DELAY))
