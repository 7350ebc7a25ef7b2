"""
CHIP-8 仮想マシン インタプリタ

16ビット命令・4KBメモリ・16本の8ビットレジスタ・64x32モノクロ画面・
コールスタック・2本のダウンカウンタを持つ仮想マシンの実装

対象範囲:
- 命令デコード
- フェッチ・デコード・実行サイクル
- スプライト描画 (ラップアラウンド・衝突判定)
- キーパッド入力 (スレッドセーフ)
- 遅延/サウンドタイマ
"""

__version__ = "0.1.0"
__author__ = "CHIP-8 Emulator Team"

from .opcode import Instruction, decode
from .memory import Chip8Memory
from .display import Framebuffer
from .keypad import Keypad
from .timer import TimerController
from .cpu import Chip8Cpu
from .emulator import Chip8Emulator, EmulatorConfig
from .errors import (
    Chip8Error,
    InvalidOpcodeError,
    LoadError,
    OutOfRangeAccessError,
    StackOverflowError,
    StackUnderflowError,
)

__all__ = [
    "Instruction",
    "decode",
    "Chip8Memory",
    "Framebuffer",
    "Keypad",
    "TimerController",
    "Chip8Cpu",
    "Chip8Emulator",
    "EmulatorConfig",
    "Chip8Error",
    "InvalidOpcodeError",
    "LoadError",
    "OutOfRangeAccessError",
    "StackOverflowError",
    "StackUnderflowError",
]
