import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Self, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy import signal

from VNKernel.errors import ConfigurationError
from VNKernel.generator import VelvetNoiseGenerator, check_random_source
from VNKernel.kernel import SparseKernel
from VNKernel.placement import PlacementVariant, PulsePlacement, make_placement
from VNKernel.utils import timed
from VNKernel.utils.dsp import as_float, check_mono, energy

log = logging.getLogger(__name__)

# ----------------------------------------------------------------------------
#
# Matching Pursuit Extrapolation
#
# ----------------------------------------------------------------------------


class Termination(StrEnum):
    CONVERGED = 'converged'  # Residual energy fell below the tolerance
    MAX_ATOMS = 'max_atoms'  # Iteration cap reached
    STALLED = 'stalled'  # No candidate lag can reduce the residual any further
    DEGENERATE = 'degenerate'  # The context has no energy to project onto


@dataclass(kw_only=True, slots=True)
class Extrapolation:
    """The outcome of fitting a context: the selected atoms and how the fit went.

    Attributes
    ----------
        atoms : dict[int, float]
            Maps each selected lag to its accumulated coefficient.
        residual_energies : list[float]
            Residual energy before the first iteration, then after every accepted iteration.
        termination : Termination
            Why the fit stopped.

    """

    atoms: dict[int, float] = field(default_factory=dict)
    residual_energies: list[float] = field(default_factory=list)
    termination: Termination = Termination.MAX_ATOMS

    @property
    def num_atoms(self) -> int:
        return len(self.atoms)

    def predict(self, context: ArrayLike, num_samples: int) -> NDArray:
        """Continue context by num_samples samples using the selected atoms.

        Each predicted sample is the weighted sum of the samples one lag earlier,
        which lie in the context or in already predicted samples.
        Samples are produced in blocks as long as the smallest lag, the longest stretch that only depends on known samples.

        """
        context = as_float(context)
        check_mono(context)
        _check_num_samples(num_samples)
        if not self.atoms:
            return np.zeros(num_samples, dtype=context.dtype)

        lags = sorted(self.atoms)
        context_len = len(context)
        if context_len < lags[-1]:
            raise ConfigurationError(
                f'Context of {context_len} samples is too short for a lag of {lags[-1]} samples.'
            )

        extended_sig = np.concatenate((context, np.zeros(num_samples, context.dtype)))
        block_len = lags[0]
        for start in range(context_len, context_len + num_samples, block_len):
            stop = min(start + block_len, context_len + num_samples)
            for lag in lags:
                extended_sig[start:stop] += (
                    self.atoms[lag] * extended_sig[start - lag : stop - lag]
                )
        return extended_sig[context_len:]


@dataclass(kw_only=True, slots=True)
class Extrapolator:
    """Predict the continuation of a signal from weighted, delayed copies of itself.

    The candidate delays (lags) are the tap positions of one or more sparse velvet noise kernels.
    Fitting is a matching pursuit: the part of the context past the largest lag is the target,
    every lag offers the context delayed by that lag as an atom, and each iteration picks the atom best
    correlated with what is left of the target, projects the residual onto it, and subtracts the projection.

    Attributes
    ----------
        kernels : Sequence[SparseKernel]
            The kernel family. Its nonzero tap indexes above 0 are the candidate lags.
        max_atoms : int
            The maximum number of iterations, and therefore of selected atoms.
        tolerance : float
            Stop once the residual energy is at most tolerance times the target energy.

    """

    kernels: Sequence[SparseKernel]
    max_atoms: int = 32
    tolerance: float = 1e-6

    _lags: NDArray[np.intp] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.kernels, SparseKernel):
            self.kernels = [self.kernels]
        if self.max_atoms < 1:
            raise ConfigurationError(
                f'max_atoms must be at least 1, but got {self.max_atoms}.'
            )
        if self.tolerance < 0:
            raise ConfigurationError(
                f'tolerance must be non-negative, but got {self.tolerance}.'
            )
        lags = np.unique(
            np.concatenate(
                [kernel.indexes for kernel in self.kernels] or [np.array([], np.intp)]
            )
        )
        self._lags = lags[lags > 0]
        if len(self._lags) == 0:
            raise ConfigurationError(
                'The kernel family has no taps past index 0 to use as lags.'
            )

    @classmethod
    def from_velvet_noise(
        cls,
        *,
        sample_rate_hz: float,
        density: float,
        max_lag: int,
        num_kernels: int = 1,
        variant: PlacementVariant | str | PulsePlacement = PlacementVariant.UNIFORM,
        seed: int | None = None,
        max_atoms: int = 32,
        tolerance: float = 1e-6,
        **kwargs,
    ) -> Self:
        """Build an Extrapolator whose lags come from num_kernels independent velvet noise kernels of max_lag + 1 samples."""
        placement = make_placement(variant, **kwargs)
        kernels = [
            SparseKernel.from_pulses(
                VelvetNoiseGenerator(
                    density=density,
                    sample_rate_hz=sample_rate_hz,
                    placement=placement,
                    rng=np.random.default_rng(child_seed),
                ),
                length=max_lag + 1,
            )
            for child_seed in np.random.SeedSequence(seed).spawn(num_kernels)
        ]
        return cls(kernels=kernels, max_atoms=max_atoms, tolerance=tolerance)

    @property
    def lags(self) -> NDArray[np.intp]:
        """The candidate lags, in increasing order."""
        return self._lags

    @property
    def max_lag(self) -> int:
        return int(self._lags[-1])

    @timed()
    def fit(self, context: ArrayLike) -> Extrapolation:
        """Select the atoms that best predict context from its own past."""
        context = as_float(context)
        check_mono(context)
        context_len, max_lag, lags = len(context), self.max_lag, self._lags
        if context_len <= max_lag:
            raise ConfigurationError(
                f'Context of {context_len} samples is too short for lags up to {max_lag} samples, '
                f'it needs at least {max_lag + 1} samples.'
            )

        residual = context[max_lag:].copy()
        result = Extrapolation(residual_energies=[energy(residual)])
        target_energy = result.residual_energies[0]
        atom_energies = np.array(
            [energy(context[max_lag - lag : context_len - lag]) for lag in lags]
        )
        usable = atom_energies > 0.0

        if target_energy == 0.0 or not np.any(usable):
            log.warning(
                'Cannot extrapolate a context without energy, forecasting silence.'
            )
            result.termination = Termination.DEGENERATE
            return result

        for _ in range(self.max_atoms):
            if result.residual_energies[-1] <= self.tolerance * target_energy:
                break

            # correlations[s] is the inner product of the residual with the context delayed by max_lag - s
            correlations = signal.correlate(context, residual, mode='valid')
            scores = np.zeros(len(lags))
            scores[usable] = np.abs(correlations[max_lag - lags[usable]]) / np.sqrt(
                atom_energies[usable]
            )
            best = int(np.argmax(scores))
            if scores[best] == 0.0:
                result.termination = Termination.STALLED
                break

            lag = int(lags[best])
            atom = context[max_lag - lag : context_len - lag]
            coefficient = float(np.dot(residual, atom) / atom_energies[best])
            updated_residual = residual - coefficient * atom
            updated_energy = energy(updated_residual)
            if updated_energy > result.residual_energies[-1]:
                # Rounding has caught up with the projection.
                result.termination = Termination.STALLED
                break

            residual = updated_residual
            result.atoms[lag] = result.atoms.get(lag, 0.0) + coefficient
            result.residual_energies.append(updated_energy)

        if result.termination != Termination.STALLED:
            result.termination = (
                Termination.CONVERGED
                if result.residual_energies[-1] <= self.tolerance * target_energy
                else Termination.MAX_ATOMS
            )

        log.debug(
            'Fit %d atoms in %d iterations (%s), residual at %.3e of the target energy.',
            result.num_atoms,
            len(result.residual_energies) - 1,
            result.termination,
            result.residual_energies[-1] / target_energy,
        )
        return result

    def extrapolate(self, context: ArrayLike, num_samples: int) -> NDArray:
        """Return a forecast of exactly num_samples samples following context."""
        _check_num_samples(num_samples)
        if num_samples == 0:
            return np.zeros(0, dtype=as_float(context).dtype)
        return self.fit(context).predict(context, num_samples)

    def __call__(self, context: ArrayLike, num_samples: int) -> NDArray:
        """Alternative way of calling extrapolate."""
        return self.extrapolate(context, num_samples)


def extrapolate(
    context: ArrayLike,
    num_samples: int,
    kernels: SparseKernel | Sequence[SparseKernel],
    *,
    max_atoms: int = 32,
    tolerance: float = 1e-6,
) -> NDArray:
    """Predict num_samples samples following context, using the tap positions of kernels as candidate lags."""
    return Extrapolator(kernels=kernels, max_atoms=max_atoms, tolerance=tolerance)(
        context, num_samples
    )


# ----------------------------------------------------------------------------
#
# Velvet Noise Sustain
#
# ----------------------------------------------------------------------------


@timed()
def sustain(
    samples: ArrayLike,
    num_samples: int,
    *,
    sample_rate_hz: float,
    num_taps: int = 32,
    gain: float = 0.3,
    seed: int | None = None,
    rng: np.random.Generator | None = None,
) -> NDArray:
    """Extend a short sound into an endless, stationary one with a moving velvet noise kernel.

    The taps of a velvet noise kernel as long as the sound slide along it by one sample per output sample.
    A tap sliding past the end of the sound starts over at its beginning with a new random sign,
    so the number of simultaneous taps stays at num_taps and the output never repeats.

    Parameters
    ----------
    samples : ArrayLike
        The mono sound to extend.
    num_samples : int
        The number of output samples.
    sample_rate_hz : float
        The sample rate of samples.
    num_taps : int, optional
        The number of simultaneous taps. The default is 32.
    gain : float, optional
        The output gain, to keep the sum of taps from clipping. The default is 0.3.
    seed : int | None, optional
        Seed for the random source.
    rng : numpy.random.Generator | None, optional
        A caller-owned random source, exclusive with seed.

    Returns
    -------
    NDArray
        The sustained sound, of shape (num_samples,).

    """
    samples = as_float(samples)
    check_mono(samples)
    check_random_source(seed, rng)
    _check_num_samples(num_samples)
    sig_len = len(samples)
    if sig_len == 0:
        raise ConfigurationError('Cannot sustain an empty sound.')
    if num_taps < 1:
        raise ConfigurationError(f'num_taps must be at least 1, but got {num_taps}.')

    output_sig = np.zeros(num_samples, dtype=samples.dtype)
    if num_samples == 0:
        return output_sig

    rng = rng if rng is not None else np.random.default_rng(seed)
    kernel = SparseKernel.from_pulses(
        VelvetNoiseGenerator(
            density=num_taps * sample_rate_hz / sig_len,
            sample_rate_hz=sample_rate_hz,
            rng=rng,
        ),
        length=sig_len,
    )

    elapsed = np.arange(num_samples)
    for impulse_index, sign in kernel:
        positions = impulse_index + elapsed
        # one sign per pass over the sound, starting with the kernel's own
        fresh_signs = np.where(rng.random(positions[-1] // sig_len) < 0.5, 1.0, -1.0)
        signs = np.concatenate(([sign], fresh_signs))
        output_sig += samples[positions % sig_len] * signs[positions // sig_len]

    output_sig *= gain
    return output_sig


def _check_num_samples(num_samples: int) -> None:
    if num_samples < 0:
        raise ConfigurationError(
            f'num_samples must be non-negative, but got {num_samples}.'
        )
