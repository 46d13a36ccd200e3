"""ADMM ソルバの設定と、設定ファイル（TOML/JSON）の読み込み。

目的:
        反復回数や ρ スケジュールといった「定数」をコードに埋め込まず、
        ADMMConfig として明示的にソルバへ渡す。実験を設定ファイルで再現できるよう、
        TOML/JSON から辞書としてロードするユーティリティも提供する。
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import tomllib


STOPPING_RULES = ("fixed", "residual")
FACTORIZATIONS = ("cholesky", "solve", "inverse")


def load_config(path: Path) -> Dict[str, Any]:
    """設定ファイルを読み込み、Python の辞書として返す。

    Args:
        path: 設定ファイルへのパス。拡張子でフォーマットを判定する。

    Returns:
        設定内容を表す辞書。

    Raises:
        FileNotFoundError: 指定パスが存在しない場合。
        ValueError: 対応していない拡張子の場合。
        json.JSONDecodeError: JSON のパースに失敗した場合。
        tomllib.TOMLDecodeError: TOML のパースに失敗した場合。
    """

    path = Path(path)

    # 設定ファイルが存在しない場合は、早期に失敗させて原因を明確化する。
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    if path.suffix == ".toml":
        # tomllib.load はバイナリファイルオブジェクトを想定する。
        with path.open("rb") as handle:
            return tomllib.load(handle)

    if path.suffix == ".json":
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    raise ValueError(f"Unsupported config format: {path.suffix}")


@dataclass(frozen=True)
class ADMMConfig:
    """ADMM 反復の制御パラメータ。

    既定値は固定回数（100 回）の反復と、ρ = 1e-4 から 1.1 倍ずつ 5.0 まで
    増やすスケジュール。

    Attributes:
        max_iter: 反復回数の上限。stopping="fixed" ではちょうどこの回数だけ回す。
        rho0: ρ の初期値。x 更新の係数行列を正定値に保つため正である必要がある。
        rho_max: ρ の上限。
        rho_growth: 1 反復ごとの ρ の乗数（1 以上）。
        stopping: "fixed"（固定回数）または "residual"（残差で早期終了）。
        tol_primal: primal residual ||x - z|| の閾値（stopping="residual" のみ）。
        tol_dual: dual residual ||ρ(z_k - z_{k-1})|| の閾値（stopping="residual" のみ）。
        factorization: x 更新の解法。"cholesky" / "solve" / "inverse"。
        check_finite: 各反復後に x, z, l の NaN/inf を検査するか。
        max_seconds: 反復間で確認する経過時間の上限（秒）。None なら無制限。
        show_progress: tqdm のプログレスバーを stderr に表示するか（既定はオフ）。
    """

    max_iter: int = 100
    rho0: float = 1e-4
    rho_max: float = 5.0
    rho_growth: float = 1.1
    stopping: str = "fixed"
    tol_primal: float = 1e-4
    tol_dual: float = 1e-4
    factorization: str = "cholesky"
    check_finite: bool = True
    max_seconds: Optional[float] = None
    show_progress: bool = False

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """値域を検証する。不正な場合は ValueError。"""

        if (
            isinstance(self.max_iter, bool)
            or int(self.max_iter) != self.max_iter
            or self.max_iter < 1
        ):
            raise ValueError("max_iter は 1 以上の整数である必要があります。")
        if not (math.isfinite(self.rho0) and self.rho0 > 0.0):
            raise ValueError("rho0 は正の有限値である必要があります。")
        if not (math.isfinite(self.rho_max) and self.rho_max >= self.rho0):
            raise ValueError("rho_max は rho0 以上の有限値である必要があります。")
        if not (math.isfinite(self.rho_growth) and self.rho_growth >= 1.0):
            raise ValueError("rho_growth は 1 以上である必要があります。")
        if self.stopping not in STOPPING_RULES:
            raise ValueError(
                f"stopping は {STOPPING_RULES} のいずれかである必要があります: {self.stopping!r}"
            )
        if self.tol_primal < 0.0 or self.tol_dual < 0.0:
            raise ValueError("tol_primal / tol_dual は非負である必要があります。")
        if self.factorization not in FACTORIZATIONS:
            raise ValueError(
                f"factorization は {FACTORIZATIONS} のいずれかである必要があります: "
                f"{self.factorization!r}"
            )
        if self.max_seconds is not None and self.max_seconds < 0.0:
            raise ValueError("max_seconds は非負である必要があります。")

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "ADMMConfig":
        """辞書から構築する。未知のキーがあれば TypeError（__init__ と同じ挙動）。"""

        return cls(**dict(config))

    @classmethod
    def from_file(cls, path: Path) -> "ADMMConfig":
        """TOML/JSON ファイルから構築する。

        ファイルに [admm] テーブルがあればその中身を、なければトップレベルを使う。
        """

        config = load_config(Path(path))
        return cls.from_mapping(config.get("admm", config))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def field_names(cls) -> tuple:
        return tuple(f.name for f in fields(cls))
