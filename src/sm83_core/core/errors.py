# sm83_core/core/errors.py
"""
パッケージ共通の例外定義。
"""
from typing import Optional


class Sm83Error(Exception):
    """sm83_coreが送出する例外の基底クラス。"""


# @intent:responsibility 命令テーブルに登録のないオペコードを検出したことを呼び出し元へ通知します。
# @intent:post-condition コアはこの例外を握りつぶしません。
class UnmappedOpcodeError(Sm83Error):
    def __init__(self, opcode: int, address: int, prefix: Optional[int] = None):
        self.opcode = opcode
        self.address = address
        self.prefix = prefix
        if prefix is None:
            text = f"{opcode:02X}"
        else:
            text = f"{prefix:02X} {opcode:02X}"
        super().__init__(f"Unmapped opcode {text} at {address:#06x}")


class ConfigError(Sm83Error, ValueError):
    """システム構成ファイルの内容が不正な場合に送出されます。"""
