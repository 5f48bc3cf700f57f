import logging
import math
from dataclasses import dataclass, field
from itertools import count, islice, takewhile
from typing import Iterable, Iterator

import numpy as np

from VNKernel.errors import ConfigurationError
from VNKernel.placement import (
    PlacementVariant,
    Pulse,
    PulsePlacement,
    UniformJitter,
    make_placement,
)

log = logging.getLogger(__name__)


@dataclass(kw_only=True, slots=True)
class VelvetNoiseGenerator:
    """A lazy, logically infinite source of velvet noise pulses.

    Each iteration walks the grid cells 0, 1, 2, ... and asks the placement strategy for the pulse of each cell.
    Only the previous pulse index and the random source are held between pulses,
    so any amount of the sequence can be consumed in constant memory.

    Attributes
    ----------
        density : float
            Impulse density in impulses per second.
        sample_rate_hz : float
            The sample rate of the timeline the pulses are placed on.
        placement : PulsePlacement
            The strategy deciding where in its cell each pulse goes, and its sign.
        seed : int | None
            Seed for a fresh numpy random generator at the start of every iteration.
            Iterating twice over the same generator then yields identical pulses.
        rng : numpy.random.Generator | None
            A caller-owned random source, exclusive with seed.
            Its state carries over from one iteration to the next.

    """

    density: float
    sample_rate_hz: float
    placement: PulsePlacement = field(default_factory=UniformJitter)
    seed: int | None = None
    rng: np.random.Generator | None = None

    def __post_init__(self) -> None:
        check_random_source(self.seed, self.rng)
        _check_positive('density', self.density)
        _check_positive('sample_rate_hz', self.sample_rate_hz)
        log.debug(
            'Velvet noise generator: %s placement, grid period %.3f samples.',
            self.placement.variant,
            self.grid_period,
        )

    @property
    def grid_period(self) -> float:
        """The average number of samples between two pulses."""
        return self.sample_rate_hz / self.density

    def __iter__(self) -> Iterator[Pulse]:
        rng = self.rng if self.rng is not None else np.random.default_rng(self.seed)
        grid_period = self.grid_period
        previous_index = -1
        for cell_index in count():
            pulse = self.placement.place(cell_index, grid_period, rng)
            if pulse.index <= previous_index:
                # Cells narrower than a sample collide, always resolve forward.
                pulse = Pulse(previous_index + 1, pulse.sign)
            previous_index = pulse.index
            yield pulse

    def take(self, num_pulses: int) -> Iterator[Pulse]:
        """Return an iterator over the first num_pulses pulses."""
        return islice(self, num_pulses)

    def until(self, stop_index: int) -> Iterator[Pulse]:
        """Return an iterator over every pulse with an index below stop_index."""
        return takewhile(lambda pulse: pulse.index < stop_index, self)


def generate(
    density: float,
    sample_rate_hz: float,
    variant: PlacementVariant | str | PulsePlacement = PlacementVariant.UNIFORM,
    seed: int | None = None,
    *,
    rng: np.random.Generator | None = None,
    **kwargs,
) -> Iterator[Pulse]:
    """Return a lazy, infinite sequence of velvet noise pulses.

    The parameters are validated immediately, before any pulse is generated.

    Parameters
    ----------
    density : float
        Impulse density in impulses per second.
    sample_rate_hz : float
        The sample rate in Hz.
    variant : PlacementVariant | str | PulsePlacement, optional
        The velvet noise variant, or an already constructed placement strategy. The default is 'uniform'.
    seed : int | None, optional
        Seed for the random source. The default is None, i.e. fresh entropy.
    rng : numpy.random.Generator | None, optional
        A caller-owned random source to draw from instead of a seeded one.
    **kwargs
        Parameters of the placement strategy, e.g. fraction for 'constrained'.

    Returns
    -------
    Iterator[Pulse]
        The pulses, in strictly increasing index order.

    """
    return iter(
        VelvetNoiseGenerator(
            density=density,
            sample_rate_hz=sample_rate_hz,
            placement=make_placement(variant, **kwargs),
            seed=seed,
            rng=rng,
        )
    )


def chunked(pulses: Iterable[Pulse], chunk_length: int) -> Iterator[list[Pulse]]:
    """Group pulses into consecutive blocks of chunk_length samples.

    Block i holds the pulses with index in [i * chunk_length, (i + 1) * chunk_length), keeping their absolute indexes.
    Blocks without any pulse are yielded as empty lists. The grouping is lazy,
    holding back at most the first pulse of the next block.

    """
    if chunk_length <= 0:
        raise ConfigurationError(
            f'chunk_length must be positive, but got {chunk_length}.'
        )

    pulses = iter(pulses)
    pending = next(pulses, None)
    for chunk_index in count():
        if pending is None:
            return
        chunk_stop = (chunk_index + 1) * chunk_length
        chunk = []
        while pending is not None and pending.index < chunk_stop:
            chunk.append(pending)
            pending = next(pulses, None)
        yield chunk


def check_random_source(seed: int | None, rng: np.random.Generator | None) -> None:
    """Raise a TypeError if both a seed and a caller-owned random source are supplied."""
    if seed is not None and rng is not None:
        raise TypeError('Cannot supply both seed and rng, the seed would be ignored.')


def _check_positive(name: str, value: float) -> None:
    if not (math.isfinite(value) and value > 0):
        raise ConfigurationError(
            f'{name} must be a positive, finite number, but got {value}.'
        )
