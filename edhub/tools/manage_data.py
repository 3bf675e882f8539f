"""Utilities for loading configuration trees and exporting sparse matrices.

This module provides lightweight I/O helpers used by the basis classification
and the field operator parts:

- read a JSON configuration tree into a plain dictionary,
- export sparse matrices to a human-readable ``.dat`` file.
"""

import json
from .checks import validate_parameters

__all__ = [
    "load_config",
    "save_sparse_matrix_to_dat",
]


def load_config(filename):
    """Load a configuration tree from a JSON file.

    Parameters
    ----------
    filename : str
        Path to the JSON file.

    Returns
    -------
    dict
        Parsed configuration, ready for
        :meth:`~edhub.models.bit_classification.BasisClassifier.readin`.

    Raises
    ------
    TypeError
        If ``filename`` has an invalid type or the file does not hold a JSON object.
    """
    # Validate type of parameters
    validate_parameters(filename=filename)
    with open(filename, "r") as inp:
        config = json.load(inp)
    if not isinstance(config, dict):
        raise TypeError(f"{filename} should hold a JSON object, not {type(config)}")
    return config


def save_sparse_matrix_to_dat(sparse_matrix, filename):
    """Export a sparse matrix to a human-readable ``.dat`` text file.

    The output contains:

    - a header line with the matrix shape,
    - one line per non-zero entry with row/column indices and complex value.

    Parameters
    ----------
    sparse_matrix : scipy.sparse.spmatrix
        Sparse matrix to export.
    filename : str
        Output file path.

    Returns
    -------
    None

    Raises
    ------
    TypeError
        If ``sparse_matrix`` or ``filename`` has an invalid type.
    """
    validate_parameters(spmatrix=sparse_matrix, filename=filename)

    with open(filename, "w") as f:
        # Write the shape of the matrix
        f.write("# shape\n")
        f.write(f"{sparse_matrix.shape[0]} {sparse_matrix.shape[1]}\n")
        # Write the non-zero elements
        f.write("# Non-zero elements: coordinates and coefficients\n")
        coo = sparse_matrix.tocoo()
        for i, j, v in zip(coo.row, coo.col, coo.data):
            f.write(f"{i}, {j}; ({v.real}, {v.imag})\n")
