"""
Process-wide state used by the DP kernels and the pair driver: whether numba is
available to compile kernels, the worker pool pairs are dispatched on, and the
generator behind ``Alphabet.random_seq``.
"""
from functools import cached_property
from importlib.util import find_spec
from concurrent.futures import ThreadPoolExecutor
from numpy.random import default_rng
import atexit
import os
from typing import Callable


# Classes --------------------------------------------------------------------------------------------------------------
class Resources:
    """
    Lazily created shared resources.

    Sequence pairs are independent and the compiled kernels release the GIL, so one
    thread per CPU is enough to keep every core busy with DP fills.

    Examples:
        >>> RESOURCES.workers >= 1
        True
    """
    @cached_property
    def jit_enabled(self) -> bool:
        """True if numba is installed and kernels will be compiled."""
        return find_spec('numba') is not None

    @cached_property
    def workers(self) -> int:
        """Number of threads in the pair pool."""
        try: n = os.process_cpu_count()
        except AttributeError: n = os.cpu_count()
        return n or 1

    @cached_property
    def pool(self) -> ThreadPoolExecutor:
        """The shared pool used by ``EdgeFilter.all_pairs``; created on first use and shut down at exit."""
        pool = ThreadPoolExecutor(self.workers, thread_name_prefix='edgefilter')
        atexit.register(pool.shutdown, wait=False, cancel_futures=True)
        return pool

    @cached_property
    def rng(self):
        """Default generator for random sequences."""
        return default_rng()


# Decorators -----------------------------------------------------------------------------------------------------------
def jit(signature_or_function=None, **options) -> Callable:
    """
    Compiles a kernel with ``numba.jit`` when numba is installed, otherwise leaves it as plain Python.

    Examples:
        >>> @jit(nopython=True, cache=True, nogil=True)
        ... def kernel(M): ...
    """
    if not RESOURCES.jit_enabled:
        if callable(signature_or_function): return signature_or_function
        return lambda func: func
    from numba import jit as numba_jit
    if callable(signature_or_function): return numba_jit(signature_or_function)
    return numba_jit(signature_or_function, **options)


# Constants ------------------------------------------------------------------------------------------------------------
RESOURCES = Resources()
