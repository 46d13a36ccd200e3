"""データ縮約（次元削減）のインターフェースと、切断 SVD による実装。

ソルバとは状態を共有しない独立した部品で、特徴量数 n を事前に減らしたい場合などに
呼び出し側で組み合わせて使う。
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np

from .types import ArrayLike, Matrix


@runtime_checkable
class DimensionalityReducer(Protocol):
    """データ縮約アルゴリズムの共通インターフェース。"""

    def reduce(self) -> Matrix:
        """元の行列の説明力をなるべく保った、低次元の行列を返す。"""
        ...

    def recover(self) -> Matrix:
        """縮約結果から元と同じ次元の行列を近似的に復元する（情報は一部失われる）。"""
        ...


class TruncatedSVDReducer:
    """上位 k 個の特異値・特異ベクトルだけを残す縮約。"""

    def __init__(self, data: ArrayLike, k: int) -> None:
        data_array = np.asarray(data, dtype=float)
        if data_array.ndim != 2:
            raise ValueError("data は 2 次元配列である必要があります。")
        k = int(k)
        if not (1 <= k <= min(data_array.shape)):
            raise ValueError(
                f"k は 1 以上 min(m, n)={min(data_array.shape)} 以下である必要があります: {k}"
            )
        self.data = data_array
        self.k = k
        # full_matrices=False で U: (m, r), s: (r,), Vt: (r, n)（r = min(m, n)）。
        u, s, vt = np.linalg.svd(data_array, full_matrices=False)
        self.u_ = u[:, :k]
        self.singular_values_ = s[:k]
        self.components_ = vt[:k]

    def reduce(self) -> Matrix:
        """U_k Σ_k（形状 (m, k)）を返す。"""

        return self.u_ * self.singular_values_

    def recover(self) -> Matrix:
        """ランク k 近似 U_k Σ_k V_kᵀ（形状 (m, n)）を返す。"""

        return self.reduce() @ self.components_
