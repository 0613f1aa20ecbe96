"""
SM83逆アセンブラモジュール。

メモリ上のバイナリデータを解析し、SM83アセンブリ言語のニーモニック形式に変換します。
命令テーブルの記述子をそのまま参照するため、実行系と表記がずれることはありません。
"""
import re
from typing import List, Tuple

from sm83_core.transport.bus import MemoryDevice
from sm83_core.arch.sm83.instructions import lookup, CB_PREFIX
from sm83_core.arch.sm83.instructions.base import Instruction, AddressingMode, to_signed

_PLACEHOLDER = re.compile(r"\b(d16|a16|d8|a8|r8)\b")

def operand_count(instruction: Instruction) -> int:
    """プレフィックスとオペコードを除いたオペランドのバイト数を返します。"""
    return instruction.length - (2 if instruction.prefix is not None else 1)

def opcode_hex(instruction: Instruction) -> str:
    if instruction.prefix is not None:
        return f"{instruction.prefix:02X} {instruction.opcode:02X}"
    return f"{instruction.opcode:02X}"

# @intent:responsibility プレースホルダー1つ分を実際の値の表記に変換します。
# @intent:rationale JRのr8は分岐先アドレスとして、SP相対のr8は符号付きオフセットとして表記します。
def _format_placeholder(placeholder: str, instruction: Instruction, operand_bytes: List[int], address: int) -> str:
    if placeholder in ("d16", "a16"):
        return f"${operand_bytes[0] | (operand_bytes[1] << 8):04X}"
    if placeholder == "r8":
        offset = to_signed(operand_bytes[0])
        if instruction.mode is AddressingMode.RELATIVE:
            return f"${(address + instruction.length + offset) & 0xFFFF:04X}"
        return f"-${-offset:02X}" if offset < 0 else f"${offset:02X}"
    return f"${operand_bytes[0]:02X}"

# @intent:responsibility 命令記述子とオペランドバイトから、表示用テキストとオペランド値のリストを生成します。
# @intent:pre-condition operand_bytesの長さはoperand_count(instruction)と一致している必要があります。
def render(instruction: Instruction, operand_bytes: List[int], address: int) -> Tuple[str, List[str]]:
    operands = []

    def substitute(match) -> str:
        value = _format_placeholder(match.group(1), instruction, operand_bytes, address)
        operands.append(value)
        return value

    text = _PLACEHOLDER.sub(substitute, instruction.mnemonic).replace("+-", "-")
    return text, operands

# @intent:responsibility 指定されたメモリ範囲のバイナリデータを解析し、アドレスとニーモニックのリストを返します。
def disassemble(memory: MemoryDevice, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
    """
    メモリ上のデータを読み取り、(アドレス, 16進ダンプ, ニーモニック) のタプルのリストを返します。
    未定義のオペコードは "DB $xx" として1バイトずつ出力します。
    """
    result = []
    current_addr = start_addr
    end_addr = start_addr + length

    while current_addr < end_addr:
        if current_addr > 0xFFFF:
            break

        try:
            # ログを汚さないためにpeekを使用
            opcode = memory.peek(current_addr)
            sub_opcode = memory.peek((current_addr + 1) & 0xFFFF) if opcode == CB_PREFIX else None
            instruction = lookup(opcode, sub_opcode)
            if instruction is None:
                result.append((current_addr, f"{opcode:02X}", f"DB ${opcode:02X}"))
                current_addr += 1
                continue

            start = current_addr + instruction.length - operand_count(instruction)
            operand_bytes = [memory.peek((start + i) & 0xFFFF) for i in range(operand_count(instruction))]
            text, _ = render(instruction, operand_bytes, current_addr)
            hex_dump = " ".join([opcode_hex(instruction)] + [f"{b:02X}" for b in operand_bytes])
            result.append((current_addr, hex_dump, text))

            current_addr += instruction.length

        except IndexError:
            # 未接続のアドレスなど
            result.append((current_addr, "??", "ERR"))
            current_addr += 1

    return result
