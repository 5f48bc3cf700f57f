import math
from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Iterator, Protocol

import numpy as np

from VNKernel.errors import ConfigurationError

# ----------------------------------------------------------------------------
#
# Pulses and Grid Cells
#
# ----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Pulse:
    """A nonzero sample of velvet noise: its sample index and its sign (1 or -1)."""

    index: int
    sign: int

    def __iter__(self) -> Iterator[int]:
        return iter((self.index, self.sign))


def cell_bounds(cell_index: int, grid_period: float) -> tuple[int, int]:
    """Return the half-open range of integer sample indexes inside grid cell cell_index.

    Cell k covers the real interval [k * grid_period, (k + 1) * grid_period).
    Both bounds are computed the same way for every cell, so the upper bound of cell k is always
    exactly the lower bound of cell k + 1. The range is empty when the cell is narrower than a sample.

    """
    return (
        math.ceil(cell_index * grid_period),
        math.ceil((cell_index + 1) * grid_period),
    )


def _jitter(start: int, width: int, rng: np.random.Generator) -> int:
    """Return an index drawn uniformly from [start, start + width), or start if width is 0."""
    if width <= 0:
        return start
    return start + min(int(rng.random() * width), width - 1)


def _draw_sign(rng: np.random.Generator, positive_probability: float = 0.5) -> int:
    return 1 if rng.random() < positive_probability else -1


# ----------------------------------------------------------------------------
#
# Placement Strategies
#
# ----------------------------------------------------------------------------


class PlacementVariant(StrEnum):
    UNIFORM = 'uniform'  # Original velvet noise
    CONSTRAINED = 'constrained'
    ALTERNATING = 'alternating'
    CRUSHED = 'crushed'


class JitterAnchor(StrEnum):
    START = 'start'
    CENTER = 'center'


class PulsePlacement(Protocol):
    variant: ClassVar[PlacementVariant]

    def place(
        self, cell_index: int, grid_period: float, rng: np.random.Generator
    ) -> Pulse:
        """Return the single pulse of grid cell cell_index."""
        raise NotImplementedError


@dataclass(kw_only=True, slots=True)
class UniformJitter:
    """Original velvet noise.

    The pulse may land on any sample of its cell with equal probability,
    and its sign is a fair coin flip.

    """

    variant: ClassVar[PlacementVariant] = PlacementVariant.UNIFORM

    def place(
        self, cell_index: int, grid_period: float, rng: np.random.Generator
    ) -> Pulse:
        start, stop = cell_bounds(cell_index, grid_period)
        index = _jitter(start, stop - start, rng)
        return Pulse(index, _draw_sign(rng))


@dataclass(kw_only=True, slots=True)
class ConstrainedJitter:
    """Velvet noise whose pulses are restricted to a fraction of each cell.

    A smaller fraction makes pulse positions more predictable (closer to a regular pulse train),
    which darkens the timbre of the noise. With a fraction of 1.0 this is the same as UniformJitter.

    Attributes
    ----------
        fraction : float
            The share of the cell width the pulse may occupy, in (0.0, 1.0].
            The allowed range is never narrower than one sample.
        anchor : JitterAnchor
            Whether the allowed range starts at the beginning of the cell, or sits in its center.

    """

    variant: ClassVar[PlacementVariant] = PlacementVariant.CONSTRAINED

    fraction: float = 0.5
    anchor: JitterAnchor = JitterAnchor.START

    def __post_init__(self) -> None:
        if not 0.0 < self.fraction <= 1.0:
            raise ConfigurationError(
                f'fraction must be in the range (0, 1], but got {self.fraction}.'
            )
        try:
            self.anchor = JitterAnchor(self.anchor)
        except ValueError:
            raise ConfigurationError(
                f'anchor must be one of {[a.value for a in JitterAnchor]}, but got {self.anchor!r}.'
            ) from None

    def place(
        self, cell_index: int, grid_period: float, rng: np.random.Generator
    ) -> Pulse:
        start, stop = cell_bounds(cell_index, grid_period)
        cell_width = stop - start
        width = min(cell_width, max(1, math.ceil(self.fraction * cell_width)))
        if self.anchor == JitterAnchor.CENTER:
            start += (cell_width - width) // 2
        index = _jitter(start, width, rng)
        return Pulse(index, _draw_sign(rng))


@dataclass(kw_only=True, slots=True)
class AlternatingSign:
    """Velvet noise with randomized positions but a fixed, repeating sign pattern."""

    variant: ClassVar[PlacementVariant] = PlacementVariant.ALTERNATING

    pattern: tuple[int, ...] = (1, -1)

    def __post_init__(self) -> None:
        self.pattern = tuple(self.pattern)
        if not self.pattern or any(sign not in (1, -1) for sign in self.pattern):
            raise ConfigurationError(
                f'pattern must be a non-empty sequence of 1 and -1, but got {self.pattern}.'
            )

    def place(
        self, cell_index: int, grid_period: float, rng: np.random.Generator
    ) -> Pulse:
        start, stop = cell_bounds(cell_index, grid_period)
        index = _jitter(start, stop - start, rng)
        return Pulse(index, self.pattern[cell_index % len(self.pattern)])


@dataclass(kw_only=True, slots=True)
class CrushedSign:
    """Crushed velvet noise: uniform positions, with signs skewed towards one polarity.

    Attributes
    ----------
        positive_probability : float
            The probability that a pulse is positive, in [0.0, 1.0]. 0.5 gives original velvet noise.

    """

    variant: ClassVar[PlacementVariant] = PlacementVariant.CRUSHED

    positive_probability: float = 0.75

    def __post_init__(self) -> None:
        if not 0.0 <= self.positive_probability <= 1.0:
            raise ConfigurationError(
                f'positive_probability must be in the range [0, 1], but got {self.positive_probability}.'
            )

    def place(
        self, cell_index: int, grid_period: float, rng: np.random.Generator
    ) -> Pulse:
        start, stop = cell_bounds(cell_index, grid_period)
        index = _jitter(start, stop - start, rng)
        return Pulse(index, _draw_sign(rng, self.positive_probability))


def make_placement(
    variant: PlacementVariant | str | PulsePlacement = PlacementVariant.UNIFORM,
    **kwargs,
) -> PulsePlacement:
    """Return the placement strategy for variant, configured with kwargs.

    An already constructed strategy is returned as-is, in which case no kwargs may be given.

    """
    if not isinstance(variant, str):
        if kwargs:
            raise TypeError(
                f'Cannot supply {", ".join(kwargs)} together with an already constructed {type(variant).__name__}.'
            )
        return variant

    try:
        variant = PlacementVariant(variant)
    except ValueError:
        raise ConfigurationError(
            f'Unknown placement variant {variant!r}, expected one of {[v.value for v in PlacementVariant]}.'
        ) from None

    match variant:
        case PlacementVariant.UNIFORM:
            cls = UniformJitter
        case PlacementVariant.CONSTRAINED:
            cls = ConstrainedJitter
        case PlacementVariant.ALTERNATING:
            cls = AlternatingSign
        case PlacementVariant.CRUSHED:
            cls = CrushedSign
    return cls(**kwargs)
