"""ADMM による LASSO 回帰推定器（sklearn 風 API）。

本モジュールは Estimator（外側の "顔"）を提供する。
ハイパーパラメータは __init__ 引数、学習結果と ADMM 状態は fit 後属性（末尾 '_'）として保持する。
数値計算そのものは AdmmLassoSolver に委譲する。
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from .config import ADMMConfig
from .errors import ShapeError
from .metrics import r_squared
from .solver import AdmmLassoSolver, IterationCallback
from .types import ArrayLike


class LassoADMM:
    """ADMM で学習する L1 正則化線形回帰モデル。

    sklearn 互換の作法:
        - __init__ ではハイパーパラメータを属性に保存するだけ（副作用なし）
        - fit により学習し、coef_ / sparse_coef_ / lagrange_ / history_ 等を保持する

    切片は自動では追加しない。必要なら X に 1 の列を含めること。
    """

    def __init__(
        self,
        lam: float = 0.01,
        max_iter: int = 100,
        rho0: float = 1e-4,
        rho_max: float = 5.0,
        rho_growth: float = 1.1,
        stopping: str = "fixed",
        tol_primal: float = 1e-4,
        tol_dual: float = 1e-4,
        factorization: str = "cholesky",
        check_finite: bool = True,
        max_seconds: Optional[float] = None,
        show_progress: bool = False,
        callback: Optional[IterationCallback] = None,
    ) -> None:
        # 以降は sklearn 流に「引数をそのまま属性に保存」する。
        self.lam = lam
        self.max_iter = max_iter
        self.rho0 = rho0
        self.rho_max = rho_max
        self.rho_growth = rho_growth
        self.stopping = stopping
        self.tol_primal = tol_primal
        self.tol_dual = tol_dual
        self.factorization = factorization
        self.check_finite = check_finite
        self.max_seconds = max_seconds
        self.show_progress = show_progress
        self.callback = callback

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "LassoADMM":
        """辞書（設定）から推定器を構築する。

        [admm] のような入れ子テーブルを持つ設定ファイルは、
        その中身が ADMMConfig のフィールドとしてトップレベルに展開される。

        Raises:
            TypeError: config が __init__ 引数と整合しない場合（余計なキー）。
        """

        config_dict = dict(config)
        nested = config_dict.pop("admm", None)
        if nested is not None:
            config_dict.update(nested)
        return cls(**config_dict)

    def fit(self, X: ArrayLike, y: ArrayLike) -> "LassoADMM":
        """モデルを学習する。

        Args:
            X: 特徴量行列 (m, n)。pandas.DataFrame なら列名を feature_names_in_ に保持する。
            y: 目的変数 (m,)。

        Returns:
            self（sklearn の規約）。
        """

        if isinstance(X, pd.DataFrame):
            self.feature_names_in_ = np.asarray(X.columns, dtype=object)
        elif hasattr(self, "feature_names_in_"):
            del self.feature_names_in_

        X_array, y_array = self._validate_inputs(X, y)
        self.n_features_in_ = int(X_array.shape[1])

        solver = AdmmLassoSolver(
            X_array,
            y_array,
            lam=self.lam,
            config=self._build_config(),
            callback=self.callback,
        )
        result = solver.run()

        self.coef_ = result.x
        self.sparse_coef_ = result.z
        self.lagrange_ = result.l
        self.rho_ = result.rho
        self.n_iter_ = result.n_iter
        self.converged_ = result.converged
        self.history_ = result.history
        return self

    def predict(self, X: ArrayLike) -> np.ndarray:
        """予測値 X @ coef_ を返す。"""

        self._check_is_fitted()
        X_array = self._as_2d(X)
        if X_array.shape[1] != self.n_features_in_:
            raise ValueError(
                f"X の特徴量数 {X_array.shape[1]} が学習時 {self.n_features_in_} と一致しません。"
            )
        return X_array @ self.coef_

    def score(self, X: ArrayLike, y: ArrayLike) -> float:
        """決定係数 R^2 を返す（高いほど良い）。"""

        self._check_is_fitted()
        X_array, y_array = self._validate_inputs(X, y)
        return r_squared(X_array, y_array, self.coef_)

    def coef_series(self) -> pd.Series:
        """係数を特徴量名でインデックスした Series として返す。"""

        self._check_is_fitted()
        names = getattr(self, "feature_names_in_", None)
        if names is None:
            names = [f"x{j}" for j in range(self.n_features_in_)]
        return pd.Series(self.coef_, index=list(names), name="coef")

    def history_frame(self) -> pd.DataFrame:
        """反復履歴を 1 行 1 反復の DataFrame として返す。"""

        self._check_is_fitted()
        series = {
            key: value
            for key, value in self.history_.items()
            if isinstance(value, list)
        }
        frame = pd.DataFrame(series)
        frame.index.name = "iteration"
        return frame

    def _build_config(self) -> ADMMConfig:
        return ADMMConfig(
            max_iter=self.max_iter,
            rho0=self.rho0,
            rho_max=self.rho_max,
            rho_growth=self.rho_growth,
            stopping=self.stopping,
            tol_primal=self.tol_primal,
            tol_dual=self.tol_dual,
            factorization=self.factorization,
            check_finite=self.check_finite,
            max_seconds=self.max_seconds,
            show_progress=self.show_progress,
        )

    @staticmethod
    def _as_2d(X: ArrayLike) -> np.ndarray:
        X_array = np.asarray(X, dtype=float)
        # 1 次元入力は「単一特徴量」とみなし、(m, 1) に整形する。
        if X_array.ndim == 1:
            X_array = X_array.reshape(-1, 1)
        elif X_array.ndim != 2:
            raise ValueError("X は 2 次元配列（m, n）である必要があります。")
        return X_array

    def _validate_inputs(
        self, X: ArrayLike, y: ArrayLike
    ) -> Tuple[np.ndarray, np.ndarray]:
        """X を (m, n)、y を (m,) の float 配列へ正規化する。

        行数の不一致は AdmmLassoSolver 側で ShapeError になるが、
        score では solver を介さないためここでも確認する。
        """

        X_array = self._as_2d(X)
        y_array = np.asarray(y, dtype=float).reshape(-1)
        if X_array.shape[0] != y_array.shape[0]:
            raise ShapeError("X と y の行数が一致しません。")
        return X_array, y_array

    def _check_is_fitted(self) -> None:
        """fit 済みかどうかを検査する。"""

        if not hasattr(self, "coef_"):
            raise RuntimeError("This LassoADMM instance is not fitted yet.")
