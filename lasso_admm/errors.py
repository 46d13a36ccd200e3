"""lasso_admm が送出する例外。

いずれも LassoADMMError を基底に持つため、呼び出し側はまとめて捕捉できる。
同時に組み込み例外（ValueError / LinAlgError / FloatingPointError）も継承しており、
既存の except 節とも整合する。
"""

from __future__ import annotations

import numpy as np


class LassoADMMError(Exception):
    """パッケージ共通の基底例外。"""


class ShapeError(LassoADMMError, ValueError):
    """A と b の次元が整合しない場合に送出する。"""


class SingularSystemError(LassoADMMError, np.linalg.LinAlgError):
    """x 更新の連立方程式 (AᵀA + ρI) x = q が分解できない場合に送出する。"""


class NumericDivergenceError(LassoADMMError, FloatingPointError):
    """反復中に x / z / l が NaN または inf になった場合に送出する。"""

    def __init__(self, variable: str, iteration: int) -> None:
        self.variable = variable
        self.iteration = iteration
        super().__init__(
            f"{variable} が反復 {iteration} で有限値でなくなりました（NaN/inf）。"
        )
