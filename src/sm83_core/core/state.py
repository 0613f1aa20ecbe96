# sm83_core/core/state.py
"""
Core Layer (CPU状態)

このモジュールは、CPUに共通する最小限の状態（PCとSP）を保持するデータ構造を定義します。
"""
from dataclasses import dataclass

# @intent:responsibility 全アーキテクチャ共通のPC/SPを保持します。汎用レジスタはサブクラスで追加します。
@dataclass
class CpuState:
    """
    CPUのレジスタ状態の基底データクラス。
    pcとspは16bit値で、更新時は常に0xFFFFでマスクされることを前提とします。
    """
    pc: int = 0x0000  # Program Counter
    sp: int = 0x0000  # Stack Pointer
