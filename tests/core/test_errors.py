# tests/core/test_errors.py
"""
sm83_core.core.errorsモジュールの単体テスト。
"""
from sm83_core.core.errors import Sm83Error, UnmappedOpcodeError, ConfigError


class TestErrors:
    def test_unmapped_opcode_message(self):
        error = UnmappedOpcodeError(0xD3, 0x0150)
        assert isinstance(error, Sm83Error)
        assert (error.opcode, error.address, error.prefix) == (0xD3, 0x0150, None)
        assert str(error) == "Unmapped opcode D3 at 0x0150"

    def test_unmapped_prefixed_opcode_message(self):
        error = UnmappedOpcodeError(0x30, 0x0200, prefix=0xCB)
        assert str(error) == "Unmapped opcode CB 30 at 0x0200"

    def test_config_error_hierarchy(self):
        assert issubclass(ConfigError, Sm83Error)
        assert issubclass(ConfigError, ValueError)
