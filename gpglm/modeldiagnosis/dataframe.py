# gpglm/modeldiagnosis/dataframe.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""Labelled 2D table used to print fit reports."""

import numpy as np


def ftos(x, fp=3):
    """Format a float with fp digits, switching to scientific notation
    outside [0.01, 1000)."""
    if x == float("inf"):
        return "+Inf"
    if x == float("-inf"):
        return "-Inf"
    if x != x:
        return "NaN"
    if x == 0:
        return "0.0"
    abs_x = abs(x)
    if 0.1 <= abs_x < 1000:
        return f"{x:.{fp}f}"
    if 0.01 <= abs_x < 0.1:
        return f"{x:.{fp + 1}f}"
    exponent = int(np.floor(np.log10(abs_x)))
    return f"{x / 10**exponent:.{fp}f}e{exponent}"


class DataFrame:
    """Float table with named rows and columns.

    Parameters
    ----------
    data : array_like, shape (nrows, ncols)
    colnames, rownames : list of str
    """

    def __init__(self, data, colnames, rownames):
        self.data = np.atleast_2d(np.array(data, dtype=float))
        self.colnames = list(colnames)
        self.rownames = list(rownames)
        if self.data.shape != (len(self.rownames), len(self.colnames)):
            raise ValueError(
                f"data of shape {self.data.shape} given for "
                f"{len(self.rownames)} rows and {len(self.colnames)} columns"
            )

    def __getitem__(self, key):
        row, col = key
        return self.data[self.rownames.index(row), self.colnames.index(col)]

    def column(self, name):
        return self.data[:, self.colnames.index(name)]

    def concat(self, other):
        """Stack the rows of two tables with the same columns."""
        if self.colnames != other.colnames:
            raise ValueError("DataFrames must have the same column names to concatenate")
        return DataFrame(
            np.concatenate([self.data, other.data], axis=0),
            self.colnames,
            self.rownames + other.rownames,
        )

    def __repr__(self):
        rows = [[""] + self.colnames]
        for i, name in enumerate(self.rownames):
            rows.append([name + ":"] + [ftos(v) for v in self.data[i]])
        widths = [max(8, max(len(r[j]) for r in rows)) for j in range(len(rows[0]))]
        return "\n".join(
            " ".join(cell.rjust(w) for cell, w in zip(r, widths)) for r in rows
        )
