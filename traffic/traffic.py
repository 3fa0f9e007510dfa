import ipaddress
from dataclasses import dataclass, field
from typing import Tuple

from scipy.stats import truncexpon, uniform

from common.errors import ConfigurationError

# Supported distribution kinds and their parameter names.
RV_KINDS = {
    'uniform': ('min', 'max'),
    'exp': ('mean', 'bound'),
}


@dataclass(frozen=True)
class RandomVariable:
    '''
    Description of a non-negative random duration (in seconds).
    kind: uniform or exp.
    params: (min, max) for uniform, samples in [min, max).
            (mean, bound) for exp, an exponential with the given mean
            truncated to [0, bound].
    '''
    kind: str
    params: Tuple[float, ...]

    def __post_init__(self):
        if self.kind not in RV_KINDS:
            raise ConfigurationError(f'unknown distribution {self.kind}, must '
                                     f'be one of {list(RV_KINDS)}.')
        if len(self.params) != len(RV_KINDS[self.kind]):
            raise ConfigurationError(f'{self.kind} takes params '
                                     f'{RV_KINDS[self.kind]}, got '
                                     f'{self.params}.')
        # Normalizes params so that equal variables compare equal.
        object.__setattr__(self, 'params', tuple(float(p) for p in self.params))
        if self.kind == 'uniform':
            lo, hi = self.params
            if lo < 0 or hi <= lo:
                raise ConfigurationError(f'uniform needs 0 <= min < max, got '
                                         f'{self.params}.')
        elif self.kind == 'exp':
            mean, bound = self.params
            if mean <= 0 or bound <= 0:
                raise ConfigurationError(f'exp needs positive mean and bound, '
                                         f'got {self.params}.')
        # Frozen once and reused by every draw.
        object.__setattr__(self, '_dist', self._makeDist())

    @classmethod
    def fromSpec(cls, spec):
        '''
        Builds a RandomVariable from a (kind, params) tuple, or returns `spec`
        if it already is one.
        '''
        if isinstance(spec, cls):
            return spec
        kind, params = spec
        return cls(kind, tuple(params))

    def _makeDist(self):
        if self.kind == 'uniform':
            lo, hi = self.params
            return uniform(loc=lo, scale=hi - lo)
        mean, bound = self.params
        return truncexpon(b=bound / mean, loc=0, scale=mean)

    def freeze(self):
        '''
        Returns the equivalent frozen scipy.stats distribution.
        '''
        return self._dist

    def sample(self, rng, size=None):
        '''
        Draws samples using the numpy Generator `rng`. Returns a float if
        `size` is None, otherwise a NumPy array.
        '''
        samples = self._dist.rvs(size=size, random_state=rng)
        return float(samples) if size is None else samples

    def ppf(self, q):
        '''
        Maps uniform [0, 1) variates `q` to durations by inverse transform.
        Both kinds sample this way, so ppf(rng.random(n)) draws the same values
        as n calls to sample(rng).
        '''
        return self._dist.ppf(q)

    def __str__(self):
        args = ', '.join(f'{n}={p}' for n, p in zip(RV_KINDS[self.kind],
                                                     self.params))
        return f'{self.kind}({args})'


@dataclass(frozen=True)
class Flow:
    '''
    A directed traffic demand from a right leaf to a left leaf, modeled after
    an on/off application: the source alternates between off and on periods
    (starting off) within [start_time, stop_time], and sends at `data_rate`
    while on.
    '''
    # Flow name, `<src>-><dst>`.
    name: str
    # Source node name.
    src: str
    # Destination node name.
    dst: str
    dst_address: ipaddress.IPv4Address
    dst_port: int
    on_time: RandomVariable
    off_time: RandomVariable
    start_time: float
    stop_time: float
    # Sampled on periods [(start, end), ...] within the active window.
    on_periods: Tuple[Tuple[float, float], ...] = field(default=())
    # Sending rate in bps during on periods.
    data_rate: int = 500 * 1000
    # Packet size in bytes.
    packet_size: int = 512
    protocol: str = 'tcp'

    def onDuration(self):
        '''
        Returns the total time (in sec) the flow spends in the on state.
        '''
        return sum(end - start for start, end in self.on_periods)

    def offeredBytes(self):
        '''
        Returns the number of bytes the source offers during its on periods.
        '''
        return int(self.onDuration() * self.data_rate / 8)
