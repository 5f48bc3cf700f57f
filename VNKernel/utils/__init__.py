import logging
import time
from functools import wraps

log = logging.getLogger(__name__)


def timed(repetitions: int = 1):
    """
    A decorator to log the execution time of a function at DEBUG level.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            execution_time = 0
            for _ in range(repetitions):
                start_time = time.perf_counter()
                result = func(*args, **kwargs)
                end_time = time.perf_counter()
                execution_time += end_time - start_time
            log.debug(
                "Function '%s' executed %d times averaging %.4f milliseconds.",
                func.__qualname__,
                repetitions,
                (execution_time / repetitions) * 1000,
            )
            return result

        return wrapper

    return decorator
