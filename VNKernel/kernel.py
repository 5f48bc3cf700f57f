from dataclasses import dataclass
from itertools import islice, takewhile
from typing import Iterable, Iterator, Self

import numpy as np
from numpy.typing import NDArray

from VNKernel.errors import ConfigurationError
from VNKernel.placement import Pulse

Tap = tuple[int, float]

# ----------------------------------------------------------------------------
#
# Dense Sample Adapter
#
# ----------------------------------------------------------------------------


def to_samples(pulses: Iterable[Pulse]) -> Iterator[float]:
    """Expand pulses into a conventional sample sequence, with 0.0 at every index without a pulse.

    The expansion is as lazy as the pulses: an infinite pulse sequence gives an infinite sample sequence.

    """
    sample_index = 0
    for pulse_index, sign in pulses:
        while sample_index < pulse_index:
            yield 0.0
            sample_index += 1
        yield float(sign)
        sample_index += 1


def to_fir(pulses: Iterable[Pulse], num_samples: int) -> NDArray[np.float64]:
    """Collect the first num_samples samples of pulses into a numpy array.

    Consumption of pulses stops at the first pulse at or beyond num_samples.

    """
    fir = np.zeros(num_samples)
    for pulse_index, sign in pulses:
        if pulse_index >= num_samples:
            break
        fir[pulse_index] = sign
    return fir


# ----------------------------------------------------------------------------
#
# Sparse Kernels
#
# ----------------------------------------------------------------------------


class SparseKernelIterator:
    """A lazy view of a pulse sequence as convolution kernel taps.

    Yields (index, amplitude) pairs, where amplitude is 1.0 or -1.0 and indexes strictly increase from 0.
    Nothing is buffered, so unbounded pulse sequences stay unbounded.
    The tap contract is checked as the taps are produced.

    """

    __slots__ = ('_pulses', '_previous_index')

    def __init__(self, pulses: Iterable[Pulse]) -> None:
        self._pulses = iter(pulses)
        self._previous_index = -1

    def __iter__(self) -> Self:
        return self

    def __next__(self) -> Tap:
        index, sign = next(self._pulses)
        if index <= self._previous_index:
            raise ValueError(
                f'Kernel taps must have strictly increasing, non-negative indexes, but got {index} after {self._previous_index}.'
            )
        if sign not in (1, -1):
            raise ValueError(f'Kernel tap amplitudes must be 1 or -1, but got {sign}.')
        self._previous_index = index
        return index, float(sign)

    def materialize(
        self, *, num_taps: int | None = None, length: int | None = None
    ) -> 'SparseKernel':
        """Collect the remaining taps into a finite SparseKernel.

        Parameters
        ----------
        num_taps : int | None, optional
            Keep at most this many taps.
        length : int | None, optional
            Keep only taps with an index below length.

        Returns
        -------
        SparseKernel
            The finite kernel. If neither limit is given, the underlying pulses must be finite.

        """
        taps: Iterator[Tap] = self
        if num_taps is not None:
            taps = islice(taps, num_taps)
        if length is not None:
            taps = takewhile(lambda tap: tap[0] < length, taps)
        return SparseKernel.from_taps(taps)


@dataclass(frozen=True, slots=True, eq=False)
class SparseKernel:
    """A finite velvet noise kernel, stored as the indexes and signs of its nonzero taps.

    Attributes
    ----------
        indexes : NDArray
            Strictly increasing, non-negative tap indexes, relative to the start of the kernel.
        amplitudes : NDArray
            The amplitude of each tap, either 1.0 or -1.0.

    """

    indexes: NDArray[np.intp]
    amplitudes: NDArray[np.float64]

    def __post_init__(self) -> None:
        indexes = np.array(self.indexes, dtype=np.intp).reshape(-1)
        amplitudes = np.array(self.amplitudes, dtype=np.float64).reshape(-1)
        if indexes.shape != amplitudes.shape:
            raise ConfigurationError(
                f'Got {len(indexes)} tap indexes but {len(amplitudes)} amplitudes.'
            )
        if len(indexes) and (indexes[0] < 0 or np.any(np.diff(indexes) <= 0)):
            raise ConfigurationError(
                'Kernel tap indexes must be non-negative and strictly increasing.'
            )
        if np.any(np.abs(amplitudes) != 1.0):
            raise ConfigurationError('Kernel tap amplitudes must be 1.0 or -1.0.')
        indexes.setflags(write=False)
        amplitudes.setflags(write=False)
        object.__setattr__(self, 'indexes', indexes)
        object.__setattr__(self, 'amplitudes', amplitudes)

    @classmethod
    def from_taps(cls, taps: Iterable[Tap]) -> Self:
        indexes, amplitudes = [], []
        for index, amplitude in taps:
            indexes.append(index)
            amplitudes.append(amplitude)
        return cls(indexes=indexes, amplitudes=amplitudes)

    @classmethod
    def from_pulses(
        cls,
        pulses: Iterable[Pulse],
        *,
        num_taps: int | None = None,
        length: int | None = None,
    ) -> Self:
        """Materialize a finite kernel from a (possibly infinite) pulse sequence. See SparseKernelIterator.materialize."""
        return SparseKernelIterator(pulses).materialize(num_taps=num_taps, length=length)

    @property
    def num_taps(self) -> int:
        """The number of nonzero taps."""
        return len(self.indexes)

    @property
    def length(self) -> int:
        """The length of the kernel in samples: the index of the last tap + 1, or 0 for an empty kernel."""
        return int(self.indexes[-1]) + 1 if len(self.indexes) else 0

    @property
    def negative_indexes(self) -> NDArray[np.intp]:
        return self.indexes[self.amplitudes < 0]

    @property
    def positive_indexes(self) -> NDArray[np.intp]:
        return self.indexes[self.amplitudes > 0]

    @property
    def FIR(self) -> NDArray[np.float64]:
        """Return the kernel as a dense finite impulse response of shape (length,)."""
        fir = np.zeros(self.length)
        fir[self.indexes] = self.amplitudes
        return fir

    def __iter__(self) -> Iterator[Tap]:
        return zip(self.indexes.tolist(), self.amplitudes.tolist())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SparseKernel):
            return NotImplemented
        return np.array_equal(self.indexes, other.indexes) and np.array_equal(
            self.amplitudes, other.amplitudes
        )

    def __repr__(self) -> str:
        return f'{type(self).__name__}(num_taps={self.num_taps}, length={self.length})'


def render(
    taps: Iterable[Tap] | Iterable[Pulse],
    start: int,
    stop: int,
    gain: float = 1.0,
) -> list[Tap]:
    """Export the taps with index in [start, stop) as (index, amplitude * gain) pairs.

    taps must be ordered by index; consumption stops at the first tap at or beyond stop,
    so an infinite pulse sequence can be rendered directly.
    Rendering neighbouring windows of different generators with decreasing gains, and concatenating the results,
    gives a single segmented kernel with a decaying envelope.

    """
    rendered = []
    for index, amplitude in taps:
        if index >= stop:
            break
        if index >= start:
            rendered.append((int(index), float(amplitude) * gain))
    return rendered


def as_taps(kernel: SparseKernel | Iterable[Tap]) -> tuple[NDArray, NDArray]:
    """Return the tap indexes and amplitudes of kernel as two numpy arrays.

    kernel can be a SparseKernel, or any finite iterable of (index, amplitude) pairs.

    """
    if isinstance(kernel, SparseKernel):
        return kernel.indexes, kernel.amplitudes
    taps = list(kernel)
    indexes = np.array([index for index, _ in taps], dtype=np.intp)
    amplitudes = np.array([amplitude for _, amplitude in taps], dtype=np.float64)
    if np.any(indexes < 0):
        raise ConfigurationError('Kernel tap indexes must be non-negative.')
    return indexes, amplitudes
