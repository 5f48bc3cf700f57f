import logging
from typing import Iterable

import numpy as np
from numpy.typing import ArrayLike, NDArray

from VNKernel.errors import ConfigurationError
from VNKernel.kernel import SparseKernel, Tap, as_taps
from VNKernel.utils.dsp import as_float, check_mono

log = logging.getLogger(__name__)


def convolve(input_sig: ArrayLike, kernel: SparseKernel | Iterable[Tap]) -> NDArray:
    """Perform the linear convolution of a mono signal with a sparse kernel.

    We take advantage of the sparse nature of the kernel: instead of an inner product per output sample,
    every tap adds (or subtracts) a shifted copy of the whole input into the output.
    Taps are grouped by their magnitude, so each group only needs one multiplication pass,
    and a velvet noise kernel with unit taps needs none at all.

    Parameters
    ----------
    input_sig : ArrayLike
        The mono input signal, of shape (num samples,).
    kernel : SparseKernel | Iterable[Tap]
        The kernel, as a SparseKernel or any finite iterable of (index, amplitude) taps, e.g. from render.

    Returns
    -------
    NDArray
        The convolved signal of length len(input_sig) + kernel length - 1,
        with the floating point precision of the input (float64 for integer input).

    """
    indexes, amplitudes = as_taps(kernel)
    if len(indexes) == 0:
        raise ConfigurationError('Cannot convolve with an empty kernel.')

    input_sig = as_float(input_sig)
    check_mono(input_sig)

    sig_len = len(input_sig)
    kernel_len = int(np.max(indexes)) + 1
    output_sig = np.zeros(sig_len + kernel_len - 1, dtype=input_sig.dtype)
    segment_buffer = np.zeros_like(output_sig)

    for gain in np.unique(np.abs(amplitudes)):
        if gain == 0.0:
            continue
        in_segment = np.abs(amplitudes) == gain
        signed_segment = (
            (indexes[in_segment & (amplitudes < 0)], '__isub__'),
            (indexes[in_segment & (amplitudes > 0)], '__iadd__'),
        )
        for signed_indexes, operator in signed_segment:
            for impulse_index in signed_indexes:
                getattr(
                    segment_buffer[impulse_index : impulse_index + sig_len],
                    operator,
                )(input_sig)
        if gain != 1.0:
            segment_buffer *= gain
        output_sig += segment_buffer
        segment_buffer.fill(0)

    log.debug(
        'Convolved %d samples with %d taps over a kernel of length %d.',
        sig_len,
        len(indexes),
        kernel_len,
    )
    return output_sig
