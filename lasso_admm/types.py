"""型定義。

ソルバ内部では常に float64 の NumPy 配列へ正規化してから計算するため、
入力側の ArrayLike は緩く（list / tuple / pandas オブジェクト等も許容）しておく。
"""

from typing import Any

import numpy as np

# ArrayLike:
# - np.asarray で配列化できる入力全般を表す。
ArrayLike = Any

# Vector / Matrix:
# - 正規化後の 1 次元 / 2 次元 float64 配列を表す（注釈上の区別のみ）。
Vector = np.ndarray
Matrix = np.ndarray
