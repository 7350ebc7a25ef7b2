"""
メモリモジュール

CHIP-8の4KBアドレス空間を再現
- 0x000-0x1FF: システム領域 (16進フォント 0-F)
- 0x200-0xFFF: プログラムROM・ワークRAM
"""

from typing import Iterable

from .errors import LoadError, OutOfRangeAccessError


MEMORY_SIZE = 0x1000
PROGRAM_START = 0x200
PROGRAM_CAPACITY = MEMORY_SIZE - PROGRAM_START

FONT_ADDRESS = 0x000
FONT_GLYPH_SIZE = 5

# 4x5ピクセルの16進フォント (1文字5バイト)
FONT_SET = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])


class Chip8Memory:
    """
    メモリコントローラ

    全アクセスを[0, 4096)に制限し、範囲外は例外とする
    (ラップアラウンドしない)
    """

    def __init__(self):
        self.data = bytearray(MEMORY_SIZE)
        self.reset()

    def reset(self) -> None:
        """メモリをゼロクリアしてフォントを配置"""
        self.data[:] = bytes(MEMORY_SIZE)
        self.data[FONT_ADDRESS:FONT_ADDRESS + len(FONT_SET)] = FONT_SET

    def check_range(self, address: int, length: int = 1) -> None:
        """[address, address+length) が範囲内か確認"""
        if address < 0 or address >= MEMORY_SIZE:
            raise OutOfRangeAccessError("memory", address, MEMORY_SIZE)
        end = address + length - 1
        if end >= MEMORY_SIZE:
            raise OutOfRangeAccessError("memory", end, MEMORY_SIZE)

    def read8(self, address: int) -> int:
        """8ビット読み込み"""
        self.check_range(address)
        return self.data[address]

    def read16(self, address: int) -> int:
        """16ビット読み込み (ビッグエンディアン)"""
        self.check_range(address, 2)
        return (self.data[address] << 8) | self.data[address + 1]

    def write8(self, address: int, value: int) -> None:
        """8ビット書き込み"""
        self.check_range(address)
        self.data[address] = value & 0xFF

    def read_block(self, address: int, length: int) -> bytes:
        """連続領域読み込み"""
        if length <= 0:
            return b""
        self.check_range(address, length)
        return bytes(self.data[address:address + length])

    def write_block(self, address: int, values: Iterable[int]) -> None:
        """連続領域書き込み (範囲チェック後に一括書き込み)"""
        block = bytes(v & 0xFF for v in values)
        if not block:
            return
        self.check_range(address, len(block))
        self.data[address:address + len(block)] = block

    def load_program(self, program: bytes) -> int:
        """プログラムを0x200からロード"""
        if len(program) > PROGRAM_CAPACITY:
            raise LoadError(
                f"Program too large: {len(program)} bytes (max {PROGRAM_CAPACITY})",
                size=len(program),
                capacity=PROGRAM_CAPACITY,
            )
        self.data[PROGRAM_START:PROGRAM_START + len(program)] = program
        return len(program)

    def dump(self, start: int, size: int) -> bytes:
        """メモリ領域をダンプ"""
        return self.read_block(start, size)

    def dump_hex(self, start: int, size: int, bytes_per_line: int = 16) -> str:
        """メモリを16進ダンプ形式で取得"""
        lines = []
        data = self.dump(start, size)

        for i in range(0, len(data), bytes_per_line):
            chunk = data[i:i + bytes_per_line]
            hex_part = ' '.join(f'{b:02X}' for b in chunk)
            lines.append(f'{start + i:03X}: {hex_part}')

        return '\n'.join(lines)
