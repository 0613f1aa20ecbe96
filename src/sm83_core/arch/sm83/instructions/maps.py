"""
SM83 命令マッピング定義。

各命令モジュールのルーチンを命令記述子(Instruction)に束ね、
オペコードで直接引ける256要素のテーブル（非プレフィックス / CBプレフィックス）を
モジュール読み込み時に一度だけ構築します。
"""
from typing import List, Optional

from sm83_core.arch.sm83.alu import ROTATE_KINDS
from .base import (
    Instruction, AddressingMode, REGISTER_CODES, PAIR_CODES_SP, PAIR_CODES_AF, CONDITION_CODES
)
from .load import (
    execute_ld8, execute_ld_rr_d16, execute_ld_a16_sp, execute_ld_sp_hl, execute_ld_hl_sp_r8,
    execute_push, execute_pop
)
from .alu import (
    execute_alu8, execute_inc8, execute_dec8, execute_inc16, execute_dec16, execute_add_hl_rr,
    execute_add_sp_r8, execute_rotate_a, execute_daa, execute_cpl, execute_scf, execute_ccf
)
from .control import (
    execute_jp, execute_jp_hl, execute_jr, execute_call, execute_ret, execute_reti, execute_rst,
    execute_nop, execute_halt, execute_stop, execute_di, execute_ei
)
from .bit import execute_rotate_shift, execute_bit, execute_res, execute_set

CB_PREFIX = 0xCB

# @intent:constant 公開リファレンス上で未定義（実機ではCPUがロックする）のオペコード。テーブルには登録しません。
ILLEGAL_OPCODES = frozenset({0xD3, 0xDB, 0xDD, 0xE3, 0xE4, 0xEB, 0xEC, 0xED, 0xF4, 0xFC, 0xFD})

ALU_OPERATIONS = ("ADD", "ADC", "SUB", "SBC", "AND", "XOR", "OR", "CP")

Table = List[Optional[Instruction]]


def _register(table: Table, instruction: Instruction) -> None:
    if table[instruction.opcode] is not None:
        raise ValueError(f"Duplicate instruction for opcode {instruction.opcode:02X}")
    table[instruction.opcode] = instruction

# @intent:utility_function 8bitオペランド名からアドレッシングモードを求めます。
def _operand_mode(name: str) -> AddressingMode:
    if name == "d8":
        return AddressingMode.IMMEDIATE8
    if name == "(a16)":
        return AddressingMode.ABSOLUTE
    if name == "(a8)":
        return AddressingMode.HIGH_PAGE
    if name == "(C)":
        return AddressingMode.HIGH_PAGE_C
    if name.startswith("("):
        return AddressingMode.REGISTER_INDIRECT
    return AddressingMode.REGISTER

def _operand_length(name: str) -> int:
    if name in ("d8", "(a8)"):
        return 1
    if name == "(a16)":
        return 2
    return 0

# @intent:responsibility 8bit転送命令の記述子を生成します。モードと長さはオペランド名から決まります。
def _ld8(opcode: int, dst: str, src: str, cycles) -> Instruction:
    mode = _operand_mode(src)
    if mode is AddressingMode.REGISTER:
        mode = _operand_mode(dst)
    name = "LDH" if AddressingMode.HIGH_PAGE in (_operand_mode(src), _operand_mode(dst)) else "LD"
    return Instruction(
        opcode=opcode, mnemonic=f"{name} {dst},{src}", mode=mode,
        length=1 + _operand_length(src) + _operand_length(dst), cycles=cycles,
        handler=execute_ld8, dst=dst, src=src
    )

def _alu_mnemonic(op: str, src: str) -> str:
    if op in ("ADD", "ADC", "SBC"):
        return f"{op} A,{src}"
    return f"{op} {src}"


# @intent:responsibility 非プレフィックスの256要素テーブルを構築します。
def _build_unprefixed_table() -> Table:
    table: Table = [None] * 256
    IMPLIED = AddressingMode.IMPLIED

    # --- Misc / control ---
    _register(table, Instruction(0x00, "NOP", IMPLIED, 1, (1, 4), execute_nop))
    _register(table, Instruction(0x10, "STOP", IMPLIED, 2, (1, 4), execute_stop))
    _register(table, Instruction(0x76, "HALT", IMPLIED, 1, (1, 4), execute_halt))
    _register(table, Instruction(0xF3, "DI", IMPLIED, 1, (1, 4), execute_di))
    _register(table, Instruction(0xFB, "EI", IMPLIED, 1, (1, 4), execute_ei))
    _register(table, Instruction(0x27, "DAA", IMPLIED, 1, (1, 4), execute_daa))
    _register(table, Instruction(0x2F, "CPL", IMPLIED, 1, (1, 4), execute_cpl))
    _register(table, Instruction(0x37, "SCF", IMPLIED, 1, (1, 4), execute_scf))
    _register(table, Instruction(0x3F, "CCF", IMPLIED, 1, (1, 4), execute_ccf))
    for opcode, kind in ((0x07, "RLC"), (0x0F, "RRC"), (0x17, "RL"), (0x1F, "RR")):
        _register(table, Instruction(opcode, f"{kind}A", IMPLIED, 1, (1, 4), execute_rotate_a, dst="A", operand=kind))
    # プレフィックス自体は実行されない。コストはCBテーブル側の記述子がプレフィックス分を含めて持つ
    _register(table, Instruction(CB_PREFIX, "PREFIX CB", AddressingMode.PREFIX, 1, (0, 0)))

    # --- 16-bit loads / arithmetic ---
    for code, pair in PAIR_CODES_SP.items():
        base = code << 4
        _register(table, Instruction(0x01 | base, f"LD {pair},d16", AddressingMode.IMMEDIATE16, 3, (3, 12),
                                     execute_ld_rr_d16, dst=pair))
        _register(table, Instruction(0x03 | base, f"INC {pair}", AddressingMode.REGISTER_PAIR, 1, (2, 8),
                                     execute_inc16, dst=pair))
        _register(table, Instruction(0x0B | base, f"DEC {pair}", AddressingMode.REGISTER_PAIR, 1, (2, 8),
                                     execute_dec16, dst=pair))
        _register(table, Instruction(0x09 | base, f"ADD HL,{pair}", AddressingMode.REGISTER_PAIR, 1, (2, 8),
                                     execute_add_hl_rr, dst="HL", src=pair))
    _register(table, Instruction(0x08, "LD (a16),SP", AddressingMode.ABSOLUTE, 3, (5, 20), execute_ld_a16_sp,
                                 dst="(a16)", src="SP"))
    _register(table, Instruction(0xF9, "LD SP,HL", AddressingMode.REGISTER_PAIR, 1, (2, 8), execute_ld_sp_hl,
                                 dst="SP", src="HL"))
    _register(table, Instruction(0xF8, "LD HL,SP+r8", AddressingMode.IMMEDIATE8, 2, (3, 12), execute_ld_hl_sp_r8,
                                 dst="HL", src="SP"))
    _register(table, Instruction(0xE8, "ADD SP,r8", AddressingMode.IMMEDIATE8, 2, (4, 16), execute_add_sp_r8,
                                 dst="SP"))

    # --- 8-bit INC / DEC / LD r,d8 ---
    for code, reg in REGISTER_CODES.items():
        is_hl = reg == "(HL)"
        mode = AddressingMode.REGISTER_INDIRECT if is_hl else AddressingMode.REGISTER
        _register(table, Instruction(0x04 | (code << 3), f"INC {reg}", mode, 1, (3, 12) if is_hl else (1, 4),
                                     execute_inc8, dst=reg))
        _register(table, Instruction(0x05 | (code << 3), f"DEC {reg}", mode, 1, (3, 12) if is_hl else (1, 4),
                                     execute_dec8, dst=reg))
        _register(table, _ld8(0x06 | (code << 3), reg, "d8", (3, 12) if is_hl else (2, 8)))

    # --- Indirect accumulator loads ---
    for opcode, pointer in ((0x02, "(BC)"), (0x12, "(DE)"), (0x22, "(HL+)"), (0x32, "(HL-)")):
        _register(table, _ld8(opcode, pointer, "A", (2, 8)))
        _register(table, _ld8(opcode | 0x08, "A", pointer, (2, 8)))

    # --- LD r,r' (0x40-0x7F, 0x76はHALT) ---
    for opcode in range(0x40, 0x80):
        if opcode == 0x76:
            continue
        dst = REGISTER_CODES[(opcode >> 3) & 0b111]
        src = REGISTER_CODES[opcode & 0b111]
        _register(table, _ld8(opcode, dst, src, (2, 8) if "(HL)" in (dst, src) else (1, 4)))

    # --- High page / absolute accumulator loads ---
    _register(table, _ld8(0xE0, "(a8)", "A", (3, 12)))
    _register(table, _ld8(0xF0, "A", "(a8)", (3, 12)))
    _register(table, _ld8(0xE2, "(C)", "A", (2, 8)))
    _register(table, _ld8(0xF2, "A", "(C)", (2, 8)))
    _register(table, _ld8(0xEA, "(a16)", "A", (4, 16)))
    _register(table, _ld8(0xFA, "A", "(a16)", (4, 16)))

    # --- 8-bit ALU: r / (HL) (0x80-0xBF), d8 (0xC6 + 8n) ---
    for index, op in enumerate(ALU_OPERATIONS):
        for code, reg in REGISTER_CODES.items():
            is_hl = reg == "(HL)"
            _register(table, Instruction(
                0x80 | (index << 3) | code, _alu_mnemonic(op, reg),
                AddressingMode.REGISTER_INDIRECT if is_hl else AddressingMode.REGISTER,
                1, (2, 8) if is_hl else (1, 4), execute_alu8, dst="A", src=reg, operand=op
            ))
        _register(table, Instruction(
            0xC6 | (index << 3), _alu_mnemonic(op, "d8"), AddressingMode.IMMEDIATE8, 2, (2, 8),
            execute_alu8, dst="A", src="d8", operand=op
        ))

    # --- Jumps / calls / returns ---
    _register(table, Instruction(0x18, "JR r8", AddressingMode.RELATIVE, 2, (3, 12), execute_jr))
    _register(table, Instruction(0xC3, "JP a16", AddressingMode.IMMEDIATE16, 3, (4, 16), execute_jp))
    _register(table, Instruction(0xE9, "JP HL", AddressingMode.REGISTER_PAIR, 1, (1, 4), execute_jp_hl, src="HL"))
    _register(table, Instruction(0xCD, "CALL a16", AddressingMode.IMMEDIATE16, 3, (6, 24), execute_call))
    _register(table, Instruction(0xC9, "RET", IMPLIED, 1, (4, 16), execute_ret))
    _register(table, Instruction(0xD9, "RETI", IMPLIED, 1, (4, 16), execute_reti))
    for code, cc in CONDITION_CODES.items():
        y = code << 3
        _register(table, Instruction(0x20 | y, f"JR {cc},r8", AddressingMode.RELATIVE, 2, (2, 8), execute_jr,
                                     src=cc, cycles_taken=(3, 12)))
        _register(table, Instruction(0xC2 | y, f"JP {cc},a16", AddressingMode.IMMEDIATE16, 3, (3, 12), execute_jp,
                                     src=cc, cycles_taken=(4, 16)))
        _register(table, Instruction(0xC4 | y, f"CALL {cc},a16", AddressingMode.IMMEDIATE16, 3, (3, 12),
                                     execute_call, src=cc, cycles_taken=(6, 24)))
        _register(table, Instruction(0xC0 | y, f"RET {cc}", IMPLIED, 1, (2, 8), execute_ret,
                                     src=cc, cycles_taken=(5, 20)))
    for vector_index in range(8):
        vector = vector_index << 3
        _register(table, Instruction(0xC7 | vector, f"RST {vector:02X}H", IMPLIED, 1, (4, 16), execute_rst,
                                     operand=vector))

    # --- Stack ---
    for code, pair in PAIR_CODES_AF.items():
        _register(table, Instruction(0xC1 | (code << 4), f"POP {pair}", AddressingMode.REGISTER_PAIR, 1, (3, 12),
                                     execute_pop, dst=pair))
        _register(table, Instruction(0xC5 | (code << 4), f"PUSH {pair}", AddressingMode.REGISTER_PAIR, 1, (4, 16),
                                     execute_push, src=pair))

    return table


# @intent:responsibility CBプレフィックスの256要素テーブルを構築します。全スロットが定義済みです。
def _build_cb_table() -> Table:
    table: Table = [None] * 256
    for opcode in range(256):
        reg = REGISTER_CODES[opcode & 0b111]
        y = (opcode >> 3) & 0b111
        group = opcode >> 6
        is_hl = reg == "(HL)"
        mode = AddressingMode.REGISTER_INDIRECT if is_hl else AddressingMode.REGISTER
        slow = (4, 16) if is_hl else (2, 8)

        if group == 0:
            instruction = Instruction(opcode, f"{ROTATE_KINDS[y]} {reg}", mode, 2, slow,
                                      execute_rotate_shift, dst=reg, operand=ROTATE_KINDS[y], prefix=CB_PREFIX)
        elif group == 1:
            instruction = Instruction(opcode, f"BIT {y},{reg}", mode, 2, (3, 12) if is_hl else (2, 8),
                                      execute_bit, src=reg, operand=y, prefix=CB_PREFIX)
        elif group == 2:
            instruction = Instruction(opcode, f"RES {y},{reg}", mode, 2, slow,
                                      execute_res, dst=reg, operand=y, prefix=CB_PREFIX)
        else:
            instruction = Instruction(opcode, f"SET {y},{reg}", mode, 2, slow,
                                      execute_set, dst=reg, operand=y, prefix=CB_PREFIX)
        _register(table, instruction)
    return table


UNPREFIXED_TABLE: Table = _build_unprefixed_table()
CB_TABLE: Table = _build_cb_table()


# @intent:responsibility テーブルの網羅性を検査し、問題点のリストを返します（空なら健全）。
def find_table_problems() -> List[str]:
    problems = []
    for opcode, instruction in enumerate(UNPREFIXED_TABLE):
        if instruction is None:
            if opcode not in ILLEGAL_OPCODES:
                problems.append(f"Missing instruction for opcode {opcode:02X}")
            continue
        if opcode in ILLEGAL_OPCODES:
            problems.append(f"Illegal opcode {opcode:02X} has an instruction")
        if instruction.opcode != opcode:
            problems.append(f"Opcode {opcode:02X} holds instruction for {instruction.opcode:02X}")
        if instruction.handler is None and instruction.mode is not AddressingMode.PREFIX:
            problems.append(f"Opcode {opcode:02X} has no handler")
    for opcode, instruction in enumerate(CB_TABLE):
        if instruction is None or instruction.handler is None:
            problems.append(f"Missing instruction for opcode CB {opcode:02X}")
        elif instruction.opcode != opcode:
            problems.append(f"Opcode CB {opcode:02X} holds instruction for CB {instruction.opcode:02X}")
    return problems


_problems = find_table_problems()
if _problems:
    raise RuntimeError("Incomplete SM83 instruction tables: " + "; ".join(_problems))
