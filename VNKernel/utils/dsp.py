import numpy as np
from numpy.typing import ArrayLike, NDArray


def as_float(input_sig: ArrayLike) -> NDArray[np.floating]:
    """Return input_sig as a floating point array, keeping its precision if it already has one.

    Integer and boolean signals are promoted to 64 bit floats.

    Parameters
    ----------
    input_sig : ArrayLike
        The original signal.

    Returns
    -------
    NDArray[np.floating]
        The signal with a floating point dtype.

    """
    input_sig = np.asarray(input_sig)
    if np.issubdtype(input_sig.dtype, np.floating):
        return input_sig
    return input_sig.astype(np.float64)


def energy(input_sig: NDArray) -> float:
    """Return the energy (sum of squares) of a mono signal."""
    return float(np.dot(input_sig, input_sig))


def check_mono(input_sig: NDArray) -> None:
    """If the input signal is not a mono signal, raise an error."""
    if input_sig.ndim != 1:
        raise ValueError(
            f'Input shape invalid: Expected shape (num samples,), but got shape {input_sig.shape}.'
        )
