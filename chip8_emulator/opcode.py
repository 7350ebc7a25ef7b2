"""
命令デコーダモジュール

16ビット命令語をオペランドフィールドに分解する

フィールド:
- NNN: 下位12ビット (アドレス)
- NN:  下位8ビット (即値)
- N:   下位4ビット (カウント)
- X:   ビット8-11 (レジスタ番号)
- Y:   ビット4-7  (レジスタ番号)
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Instruction:
    """デコード済み命令"""
    opcode: int
    nnn: int
    nn: int
    n: int
    x: int
    y: int

    @property
    def group(self) -> int:
        """上位4ビット (命令グループ)"""
        return (self.opcode >> 12) & 0x0F

    def encode(self) -> int:
        """フィールドから命令語を再構成"""
        return (self.group << 12) | (self.x << 8) | (self.y << 4) | self.n

    def __str__(self) -> str:
        return f"{self.opcode:04X}"


def decode(word: int) -> Instruction:
    """16ビット命令語をデコード"""
    word &= 0xFFFF
    return Instruction(
        opcode=word,
        nnn=word & 0x0FFF,
        nn=word & 0x00FF,
        n=word & 0x000F,
        x=(word & 0x0F00) >> 8,
        y=(word & 0x00F0) >> 4,
    )
