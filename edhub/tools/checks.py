"""
This module provides utility functions for type validation, timing and sparse matrix checks.
"""

import numpy as np
from functools import wraps
from scipy.sparse import issparse
from scipy.sparse.linalg import norm
from time import perf_counter
import logging

logger = logging.getLogger(__name__)

__all__ = [
    "validate_parameters",
    "get_time",
    "check_matrix",
    "check_hermitian",
]


def get_time(func):
    """Times any function"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = perf_counter()
        result = func(*args, **kwargs)
        end_time = perf_counter()
        tot_time = end_time - start_time
        logger.info(f"TIME {func.__name__} {round(tot_time, 5)}")
        return result

    return wrapper


def validate_parameters(
    config=None,
    index=None,
    n_bits=None,
    site=None,
    states=None,
    spmatrix=None,
    filename=None,
    threshold=None,
    max_workers=None,
):
    """
    This is a function for type validation of parameters widely used in the library
    """
    # -----------------------------------------------------------------------------
    if config is not None and not isinstance(config, dict):
        raise TypeError(f"config should be a DICT, not {type(config)}")
    # -----------------------------------------------------------------------------
    if index is not None and (
        not isinstance(index, (int, np.integer)) or isinstance(index, bool)
    ):
        raise TypeError(f"index should be a SCALAR INT, not {type(index)}")
    if n_bits is not None and (
        not isinstance(n_bits, (int, np.integer)) or n_bits < 0
    ):
        raise TypeError(f"n_bits should be a non-negative INT, not {n_bits}")
    if site is not None and (
        not isinstance(site, (int, np.integer)) or isinstance(site, bool)
    ):
        raise TypeError(f"site should be a SCALAR INT, not {type(site)}")
    # -----------------------------------------------------------------------------
    if states is not None:
        if not isinstance(states, np.ndarray):
            raise TypeError(f"states should be an ndarray, not a {type(states)}")
        if states.ndim != 1 or not np.issubdtype(states.dtype, np.integer):
            raise TypeError(
                f"states should be a 1D INT array, not {states.ndim}D {states.dtype}"
            )
    if spmatrix is not None and not issparse(spmatrix):
        raise TypeError(f"spmatrix should be a SPARSE matrix, not {type(spmatrix)}")
    # -----------------------------------------------------------------------------
    if filename is not None and not isinstance(filename, str):
        raise TypeError(f"filename should be a STRING, not {type(filename)}")
    if threshold is not None and not isinstance(threshold, float):
        raise TypeError(f"threshold should be a SCALAR FLOAT, not {type(threshold)}")
    if max_workers is not None and (
        not isinstance(max_workers, int) or max_workers < 1
    ):
        raise TypeError(f"max_workers should be a positive INT, not {max_workers}")


def check_matrix(A, B, threshold=1e-14):
    """
    Check the difference between two sparse matrices A and B computing the Frobenius Norm

    Args:
        A (scipy.sparse.csr_matrix): First matrix

        B (scipy.sparse.csr_matrix): Second matrix

        threshold (float, optional): maximum accepted ratio between the norm of the
            difference and the largest norm. Defaults to 1e-14.

    Raises:
        TypeError: If the input arguments are of incorrect types or formats.

        ValueError: If the matrices have different shapes or the difference ratio is above a threshold.
    """
    # CHEKS THE DIFFERENCE BETWEEN TWO SPARSE MATRICES
    validate_parameters(spmatrix=A, threshold=threshold)
    validate_parameters(spmatrix=B)
    if A.shape != B.shape:
        raise ValueError(f"Shape mismatch between : A {A.shape} & B: {B.shape}")
    norma = norm(A - B)
    norma_max = max(norm(A + B), norm(A), norm(B))
    if norma_max == 0:
        return
    ratio = norma / norma_max
    if ratio > threshold:
        logger.debug("    ERROR: A and B are DIFFERENT MATRICES")
        raise ValueError(f"    NORM {norma}, RATIO {ratio}")


def check_hermitian(A):
    """
    Check if a sparse matrix A is Hermitian.

    Args:
        A (scipy.sparse.csr_matrix): The sparse matrix to check for Hermiticity.

    Raises:
        TypeError: If the input matrix is not in the correct format.

        ValueError: If the matrix is not Hermitian.
    """
    validate_parameters(spmatrix=A)
    A_dag = A.conj().transpose()
    check_matrix(A, A_dag)
    logger.debug("HERMITICITY VALIDATED")
