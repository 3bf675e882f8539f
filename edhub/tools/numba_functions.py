import numpy as np
from numba import njit
import logging

logger = logging.getLogger(__name__)

__all__ = [
    "state_to_index_binarysearch",
    "count_occupied_below",
    "is_strictly_sorted",
]


@njit(cache=True)
def state_to_index_binarysearch(state, states):
    """Find the position of an occupation state by binary search.

    Parameters
    ----------
    state : int
        Occupation bitmask to search for.
    states : ndarray
        Strictly increasing 1D array of occupation bitmasks.

    Returns
    -------
    int
        Position of ``state`` in ``states`` if found, otherwise ``-1``.
    """
    low = 0
    high = len(states) - 1
    while low <= high:
        idx = (low + high) // 2
        if states[idx] == state:
            return idx
        elif states[idx] < state:
            low = idx + 1
        else:
            high = idx - 1
    return -1


@njit(cache=True)
def count_occupied_below(state, bit):
    """Number of occupied bits with index lower than ``bit``.

    Args:
        state (int): occupation bitmask

        bit (int): bit index

    Returns:
        int: number of set bits of ``state`` in positions ``0..bit-1``
    """
    count = 0
    for jj in range(bit):
        count += (state >> jj) & 1
    return count


@njit(cache=True)
def is_strictly_sorted(arr):
    for ii in range(1, arr.shape[0]):
        if arr[ii] <= arr[ii - 1]:
            return False
    return True
