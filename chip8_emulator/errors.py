"""
例外定義モジュール

インタプリタ実行中に発生するエラー種別
"""

from typing import Optional


class Chip8Error(RuntimeError):
    """CHIP-8コアの基底例外"""


class InvalidOpcodeError(Chip8Error):
    """未定義命令"""

    def __init__(self, opcode: int, address: Optional[int] = None):
        self.opcode = opcode
        self.address = address
        if address is None:
            message = f"Invalid opcode: 0x{opcode:04X}"
        else:
            message = f"Invalid opcode: 0x{opcode:04X} at PC=0x{address:03X}"
        super().__init__(message)


class LoadError(Chip8Error):
    """プログラムロード失敗"""

    def __init__(self, message: str, size: int = 0, capacity: int = 0):
        self.size = size
        self.capacity = capacity
        super().__init__(message)


class StackOverflowError(Chip8Error):
    """コールスタック溢れ (17段目のCALL)"""

    def __init__(self, address: int, depth: int = 16):
        self.address = address
        self.depth = depth
        super().__init__(
            f"Stack overflow: call depth exceeds {depth} at PC=0x{address:03X}"
        )


class StackUnderflowError(Chip8Error):
    """空スタックからのRET"""

    def __init__(self, address: int):
        self.address = address
        super().__init__(f"Stack underflow: return with empty stack at PC=0x{address:03X}")


class OutOfRangeAccessError(Chip8Error):
    """範囲外アクセス (メモリ・キーパッド・フレームバッファ)"""

    def __init__(self, kind: str, index: int, limit: int):
        self.kind = kind
        self.index = index
        self.limit = limit
        super().__init__(f"Out of range {kind} access: 0x{index:X} (limit 0x{limit:X})")
