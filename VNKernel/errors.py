class VNKernelError(Exception):
    """Base class for errors raised by VNKernel."""


class ConfigurationError(VNKernelError, ValueError):
    """Raised when a component is given parameters it cannot work with.

    These are usage errors: they depend only on the arguments of the call,
    never on the content of a signal, so retrying with the same arguments
    will always fail again.

    """
