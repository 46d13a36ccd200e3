"""L1 ノルムの近接写像（soft-thresholding）。"""

from __future__ import annotations

import numpy as np

from .types import ArrayLike, Vector


def soft_threshold(v: ArrayLike, thresh: float) -> Vector:
    """要素ごとの soft-thresholding を返す。

        S(v, t)_i = copysign(max(|v_i| - t, 0), v_i)

    |v_i| <= t の成分は 0 になり、それ以外は大きさが t だけ縮む。
    符号はシフト後の値ではなく元の v_i から取る。

    Args:
        v: 入力ベクトル（スカラーは長さ 1 として扱う）。
        thresh: 閾値 t（非負）。

    Returns:
        v と同じ長さの float 配列。入力は変更しない。

    Raises:
        ValueError: thresh が負または NaN の場合。
    """

    thresh = float(thresh)
    if not thresh >= 0.0:
        raise ValueError("thresh は非負である必要があります。")
    v_arr = np.atleast_1d(np.asarray(v, dtype=float))
    return np.copysign(np.maximum(np.abs(v_arr) - thresh, 0.0), v_arr)
