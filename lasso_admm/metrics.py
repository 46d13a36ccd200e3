"""回帰の当てはまりを評価する指標。"""

from __future__ import annotations

import numpy as np

from .types import ArrayLike


def sse(A: ArrayLike, b: ArrayLike, x: ArrayLike) -> float:
    """残差平方和 ||b - Ax||^2。"""

    e = np.asarray(b, dtype=float) - np.asarray(A, dtype=float) @ np.asarray(
        x, dtype=float
    )
    return float(e @ e)


def sst(b: ArrayLike) -> float:
    """全平方和 b·b - (Σb)^2 / m（平均まわりの平方和）。"""

    b_arr = np.asarray(b, dtype=float).reshape(-1)
    return float(b_arr @ b_arr - b_arr.sum() ** 2 / b_arr.size)


def r_squared(A: ArrayLike, b: ArrayLike, x: ArrayLike) -> float:
    """決定係数 R^2 = (SST - SSE) / SST。

    Raises:
        ValueError: b が定数で SST が 0 の場合。
    """

    total = sst(b)
    if total == 0.0:
        raise ValueError("b が定数のため R^2 を定義できません（SST = 0）。")
    return (total - sse(A, b, x)) / total


def lasso_objective(A: ArrayLike, b: ArrayLike, x: ArrayLike, lam: float) -> float:
    """LASSO の目的関数 (1/2)||Ax - b||^2 + λ||x||_1。"""

    x_arr = np.asarray(x, dtype=float)
    return 0.5 * sse(A, b, x_arr) + float(lam) * float(np.sum(np.abs(x_arr)))
