"""収束履歴と係数の可視化（matplotlib は任意依存）。"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

import numpy as np

try:
    import matplotlib.pyplot as plt
except ImportError:
    plt = None

from .types import ArrayLike


def _require_pyplot():
    if plt is None:
        raise RuntimeError(
            "matplotlib がインストールされていません。`pip install matplotlib` を実行してください。"
        )
    return plt


def plot_history(history: Dict[str, Any], ax: Any = None) -> Any:
    """primal/dual residual と ρ を反復ごとに描く（縦軸は対数）。

    Returns:
        描画先の Axes。
    """

    pyplot = _require_pyplot()
    if ax is None:
        _, ax = pyplot.subplots(figsize=(8, 4))
    for key in ("primal_residual", "dual_residual", "rho"):
        values = np.asarray(history.get(key, []), dtype=float)
        if values.size == 0:
            continue
        # 0 は対数軸に載らないため描画時のみ除外する。
        steps = np.arange(1, values.size + 1)
        mask = values > 0
        ax.plot(steps[mask], values[mask], label=key)
    ax.set_yscale("log")
    ax.set_xlabel("iteration")
    ax.set_title("ADMM convergence")
    ax.legend(loc="best", fontsize="small")
    ax.grid(True, linestyle=":", alpha=0.6)
    return ax


def plot_coefficients(
    coef: ArrayLike, names: Optional[Sequence[str]] = None, ax: Any = None
) -> Any:
    """係数を棒グラフで描く。

    値がちょうど 0 の係数は灰色にする。これが意味を持つのは soft-threshold 後の
    z（ADMMResult.z / LassoADMM.sparse_coef_）を渡した場合だけ。線形ソルブ由来の
    x（ADMMResult.x / LassoADMM.coef_）はほぼ 0 にならないので、灰色の棒は出ない。
    """

    pyplot = _require_pyplot()
    coef_arr = np.asarray(coef, dtype=float).reshape(-1)
    if names is None:
        names = [f"x{j}" for j in range(coef_arr.size)]
    if len(names) != coef_arr.size:
        raise ValueError("names の長さが係数の数と一致しません。")
    if ax is None:
        _, ax = pyplot.subplots(figsize=(8, 4))
    colors = ["tab:gray" if c == 0.0 else "tab:blue" for c in coef_arr]
    ax.bar(range(coef_arr.size), coef_arr, color=colors)
    ax.set_xticks(range(coef_arr.size))
    ax.set_xticklabels(list(names), rotation=45, ha="right")
    ax.axhline(0.0, color="black", linewidth=0.8)
    ax.set_ylabel("coefficient")
    ax.grid(True, axis="y", linestyle=":", alpha=0.6)
    return ax
