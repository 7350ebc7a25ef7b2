"""
CHIP-8エミュレータ メインモジュール

全コンポーネントを統合してCHIP-8仮想マシンを提供
"""

import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from .cpu import Chip8Cpu
from .display import Framebuffer
from .errors import Chip8Error, LoadError
from .keypad import Keypad
from .memory import Chip8Memory, PROGRAM_CAPACITY
from .opcode import Instruction


logger = logging.getLogger(__name__)


@dataclass
class EmulatorConfig:
    """エミュレータ設定"""
    # 乱数設定 (rng指定時はseedより優先)
    seed: Optional[int] = None
    rng: Optional[random.Random] = None

    # 実行設定 (外部ドライバ用)
    step_interval: float = 0.002
    key_hold_time: float = 0.15
    max_instructions: int = 0

    # デバッグ設定
    trace_enabled: bool = False


class Chip8Emulator:
    """
    CHIP-8仮想エミュレータ

    メモリ・フレームバッファ・キーパッド・CPUを統合する。
    step() は同時に複数スレッドから呼び出さないこと。
    press_key()/release_key() は任意のスレッドから呼び出せる。
    """

    def __init__(self, config: Optional[EmulatorConfig] = None):
        self.config = config or EmulatorConfig()

        # コンポーネント初期化
        self.memory = Chip8Memory()
        self.framebuffer = Framebuffer()
        self.keypad = Keypad()
        self.cpu = Chip8Cpu(self.memory, self.framebuffer, self.keypad, rng=self._create_rng())

        if self.config.trace_enabled:
            self.cpu.trace_callback = self._trace

        # イベントコールバック
        self.on_step: Optional[Callable] = None
        self.on_error: Optional[Callable] = None

        # 実行状態
        self.running: bool = False
        self.last_error: Optional[str] = None
        self.program: Optional[bytes] = None

    def _trace(self, address: int, instruction: Instruction, regs) -> None:
        logger.debug("%03X  %s  I=%03X SP=%d", address, instruction, regs.i, regs.sp)

    def _create_rng(self) -> random.Random:
        """乱数源を作成 (rng指定がなければseedから作り直す)"""
        return self.config.rng or random.Random(self.config.seed)

    def reset(self) -> None:
        """
        システム初期化

        メモリ・レジスタ・スタック・キーパッド・画面をクリアし、
        フォントを配置してPCを0x200に設定する。seed指定時は乱数列も最初に戻る
        """
        self.memory.reset()
        self.framebuffer.reset()
        self.keypad.reset()
        self.cpu.reset()
        self.cpu.rng = self._create_rng()
        self.running = False
        self.last_error = None
        logger.debug("Emulator reset")

    initialize = reset

    def load_program(self, data: bytes) -> int:
        """プログラムをバイト列からロード (0x200〜)"""
        size = self.memory.load_program(bytes(data))
        self.program = bytes(data)
        logger.info("Loaded program: %d bytes", size)
        return size

    def load_rom_file(self, filepath: Union[str, Path]) -> int:
        """ROMファイルをロード"""
        path = Path(filepath)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise LoadError(f"Cannot read ROM {path}: {e}") from e
        if len(data) > PROGRAM_CAPACITY:
            raise LoadError(
                f"ROM too large: {path.name} is {len(data)} bytes (max {PROGRAM_CAPACITY})",
                size=len(data),
                capacity=PROGRAM_CAPACITY,
            )
        return self.load_program(data)

    def reload_program(self) -> None:
        """初期化して直前のプログラムを再ロード"""
        if self.program is None:
            raise LoadError("No program has been loaded")
        program = self.program
        self.reset()
        self.load_program(program)

    def step(self) -> Instruction:
        """1命令実行 (エラーは記録した上で呼び出し元へ送出)"""
        try:
            instruction = self.cpu.step()
        except Chip8Error as e:
            self.last_error = str(e)
            self.running = False
            logger.error("Execution fault: %s", e)
            if self.on_error:
                self.on_error(e)
            raise

        if self.on_step:
            self.on_step(self.cpu.regs.pc, self.cpu.instruction_count)

        return instruction

    def run(self, max_instructions: Optional[int] = None) -> int:
        """連続実行"""
        limit = self.config.max_instructions if max_instructions is None else max_instructions
        self.running = True
        executed = 0

        while self.running:
            if limit > 0 and executed >= limit:
                break

            self.step()
            executed += 1

        self.running = False
        return executed

    def stop(self) -> None:
        """実行停止"""
        self.running = False

    def press_key(self, key: int) -> None:
        """キーを押す"""
        self.keypad.press(key)

    def release_key(self, key: int) -> None:
        """キーを離す"""
        self.keypad.release(key)

    def on_sound(self, callback: Callable[[bool], None]) -> None:
        """サウンド開始/停止コールバックを登録"""
        self.cpu.timers.register_sound_callback(callback)

    @property
    def sound_active(self) -> bool:
        return self.cpu.timers.sound.active

    def get_register(self, name: str) -> Optional[int]:
        """レジスタ値取得"""
        name = name.upper()
        if name == 'PC':
            return self.cpu.regs.pc
        elif name == 'I':
            return self.cpu.regs.i
        elif name == 'SP':
            return self.cpu.regs.sp
        elif name == 'DT':
            return self.cpu.timers.delay.value
        elif name == 'ST':
            return self.cpu.timers.sound.value
        elif name.startswith('V') and len(name) == 2:
            try:
                return self.cpu.regs.v[int(name[1], 16)]
            except ValueError:
                return None
        return None

    def dump_memory(self, start: int, size: int) -> str:
        """メモリダンプ"""
        return self.memory.dump_hex(start, size)

    def get_state(self) -> dict:
        """システム状態取得"""
        return {
            'cpu': self.cpu.get_state(),
            'keys': self.keypad.snapshot(),
            'draw_flag': self.framebuffer.draw_flag,
            'sound_active': self.sound_active,
            'running': self.running,
            'last_error': self.last_error,
        }
