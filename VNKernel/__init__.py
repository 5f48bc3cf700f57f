from VNKernel.convolution import convolve
from VNKernel.errors import ConfigurationError, VNKernelError
from VNKernel.extrapolation import (
    Extrapolation,
    Extrapolator,
    Termination,
    extrapolate,
    sustain,
)
from VNKernel.generator import VelvetNoiseGenerator, chunked, generate
from VNKernel.kernel import (
    SparseKernel,
    SparseKernelIterator,
    render,
    to_fir,
    to_samples,
)
from VNKernel.placement import (
    AlternatingSign,
    ConstrainedJitter,
    CrushedSign,
    JitterAnchor,
    PlacementVariant,
    Pulse,
    PulsePlacement,
    UniformJitter,
    make_placement,
)

__all__ = [
    'AlternatingSign',
    'ConfigurationError',
    'ConstrainedJitter',
    'CrushedSign',
    'Extrapolation',
    'Extrapolator',
    'JitterAnchor',
    'PlacementVariant',
    'Pulse',
    'PulsePlacement',
    'SparseKernel',
    'SparseKernelIterator',
    'Termination',
    'UniformJitter',
    'VNKernelError',
    'VelvetNoiseGenerator',
    'chunked',
    'convolve',
    'extrapolate',
    'generate',
    'make_placement',
    'render',
    'sustain',
    'to_fir',
    'to_samples',
]
