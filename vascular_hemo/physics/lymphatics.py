"""
Lymphatic drainage of the interstitium.

Both laws give a dimensionless volumetric drainage rate per unit tissue
volume as a function of the tissue pressure.
"""

import numpy as np
from scipy.special import expit


def linear_drainage(p_tissue, coefficient: float, lymph_pressure: float):
    """``Q_LF (p_t - PL)``."""
    return coefficient * (np.asarray(p_tissue, dtype=float) - lymph_pressure)


def sigmoid_drainage(p_tissue, a: float, b: float, c: float, d: float):
    """``A - B / (1 + exp((p_t - D) / C))``."""
    x = (np.asarray(p_tissue, dtype=float) - d) / c
    # 1 / (1 + exp(x)) == expit(-x)
    return a - b * expit(-x)


class LymphaticDrainage:
    """
    Drainage law selected by ``LINEAR_LYMPHATIC_DRAINAGE``.

    The linear law is implicit (matrix and right-hand side); the sigmoid law
    is evaluated on the previous tissue pressure and only enters the
    right-hand side.
    """

    def __init__(self, store):
        self.linear = store.config.bool_value("LINEAR_LYMPHATIC_DRAINAGE", True)
        self.coefficient = store.lymph_coefficient
        self.lymph_pressure = store.lymph_pressure
        self.sigmoid = store.lymph_sigmoid

    def rate(self, p_tissue) -> np.ndarray:
        if self.linear:
            return linear_drainage(p_tissue, self.coefficient, self.lymph_pressure)
        return sigmoid_drainage(p_tissue, *self.sigmoid)
