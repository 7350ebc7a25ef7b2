"""
CHIP-8 CPUコアモジュール

命令フェッチ・デコード・実行サイクルを実装する中核モジュール

レジスタ構成:
- 汎用レジスタ: V0〜VF (8ビット, VFはフラグ出力を兼ねる)
- I: インデックスレジスタ (16ビット)
- PC: プログラムカウンタ (0x200から開始)
- スタック: 16段のリターンアドレス + SP
"""

import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

from .errors import (
    InvalidOpcodeError,
    OutOfRangeAccessError,
    StackOverflowError,
    StackUnderflowError,
)
from .keypad import KEY_COUNT
from .memory import FONT_ADDRESS, FONT_GLYPH_SIZE, PROGRAM_START
from .opcode import Instruction, decode
from .timer import TimerController

if TYPE_CHECKING:
    from .display import Framebuffer
    from .keypad import Keypad
    from .memory import Chip8Memory


STACK_DEPTH = 16
FLAG = 0xF

# ディスパッチキー: (上位ニブル, サブセレクタ)
DispatchKey = Tuple[int, Optional[int]]


@dataclass
class CPURegisters:
    """CPUレジスタセット"""
    # 汎用レジスタ V0-VF
    v: List[int] = field(default_factory=lambda: [0] * 16)

    # インデックスレジスタ
    i: int = 0

    # プログラムカウンタ
    pc: int = PROGRAM_START

    # コールスタック
    stack: List[int] = field(default_factory=lambda: [0] * STACK_DEPTH)
    sp: int = 0

    @property
    def vf(self) -> int:
        """フラグレジスタ (VFのエイリアス)"""
        return self.v[FLAG]

    @vf.setter
    def vf(self, value: int) -> None:
        self.v[FLAG] = value & 0xFF


class Chip8Cpu:
    """
    CHIP-8 CPUエミュレータコア

    1回の step() で1命令を実行し、タイマを1ティック進める
    """

    def __init__(self, memory: 'Chip8Memory', framebuffer: 'Framebuffer',
                 keypad: 'Keypad', rng: Optional[random.Random] = None):
        self.regs = CPURegisters()
        self.memory = memory
        self.framebuffer = framebuffer
        self.keypad = keypad
        self.timers = TimerController()
        self.rng = rng or random.Random()

        # 実行統計
        self.instruction_count: int = 0

        # 命令テーブル
        self._instruction_table: Dict[DispatchKey, Callable[[Instruction], None]] = {}
        self._build_instruction_table()

        # トレース用コールバック
        self.trace_callback: Optional[Callable] = None

    def reset(self) -> None:
        """CPUリセット"""
        self.regs = CPURegisters()
        self.timers.reset()
        self.instruction_count = 0

    def step(self) -> Instruction:
        """1命令実行"""
        # 命令フェッチ (ビッグエンディアン)
        instruction = decode(self.memory.read16(self.regs.pc))

        if self.trace_callback:
            self.trace_callback(self.regs.pc, instruction, self.regs)

        # デコードと実行
        self._execute(instruction)

        self.timers.tick()
        self.instruction_count += 1

        return instruction

    def _execute(self, instruction: Instruction) -> None:
        """命令実行"""
        handler = self._instruction_table.get(self._dispatch_key(instruction))
        if handler is None:
            raise InvalidOpcodeError(instruction.opcode, self.regs.pc)
        handler(instruction)

    @staticmethod
    def _dispatch_key(instruction: Instruction) -> DispatchKey:
        """命令グループごとのサブセレクタを決定"""
        group = instruction.group
        if group in (0x0, 0xE, 0xF):
            return (group, instruction.nn)
        if group == 0x8:
            return (group, instruction.n)
        return (group, None)

    def _build_instruction_table(self) -> None:
        """命令テーブル構築"""
        table = self._instruction_table

        # 00E0 CLS / 00EE RET
        table[(0x0, 0xE0)] = self._op_cls
        table[(0x0, 0xEE)] = self._op_ret

        # 1NNN JP / 2NNN CALL
        table[(0x1, None)] = self._op_jp
        table[(0x2, None)] = self._op_call

        # スキップ命令
        table[(0x3, None)] = self._op_se_imm
        table[(0x4, None)] = self._op_sne_imm
        table[(0x5, None)] = self._op_se_reg
        table[(0x9, None)] = self._op_sne_reg

        # 6XNN LD / 7XNN ADD
        table[(0x6, None)] = self._op_ld_imm
        table[(0x7, None)] = self._op_add_imm

        # 8XYn レジスタ間演算
        table[(0x8, 0x0)] = self._op_ld_reg
        table[(0x8, 0x1)] = self._op_or
        table[(0x8, 0x2)] = self._op_and
        table[(0x8, 0x3)] = self._op_xor
        table[(0x8, 0x4)] = self._op_add_reg
        table[(0x8, 0x5)] = self._op_sub
        table[(0x8, 0x6)] = self._op_shr
        table[(0x8, 0x7)] = self._op_subn
        table[(0x8, 0xE)] = self._op_shl

        # ANNN LD I / CXNN RND / DXYN DRW
        table[(0xA, None)] = self._op_ld_i
        table[(0xC, None)] = self._op_rnd
        table[(0xD, None)] = self._op_drw

        # EX9E SKP / EXA1 SKNP
        table[(0xE, 0x9E)] = self._op_skp
        table[(0xE, 0xA1)] = self._op_sknp

        # FXnn タイマ・メモリ系
        table[(0xF, 0x07)] = self._op_ld_vx_dt
        table[(0xF, 0x0A)] = self._op_wait_key
        table[(0xF, 0x15)] = self._op_ld_dt_vx
        table[(0xF, 0x18)] = self._op_ld_st_vx
        table[(0xF, 0x1E)] = self._op_add_i
        table[(0xF, 0x29)] = self._op_ld_font
        table[(0xF, 0x33)] = self._op_bcd
        table[(0xF, 0x55)] = self._op_store
        table[(0xF, 0x65)] = self._op_load

    def _advance(self, skip: bool = False) -> None:
        """PCを次の命令へ (skip=Trueなら1命令飛ばす)"""
        self.regs.pc = (self.regs.pc + (4 if skip else 2)) & 0xFFFF

    # === 命令実装 ===

    def _op_cls(self, ins: Instruction) -> None:
        """00E0 - 画面クリア"""
        self.framebuffer.clear()
        self._advance()

    def _op_ret(self, ins: Instruction) -> None:
        """00EE - サブルーチンから復帰"""
        if self.regs.sp == 0:
            raise StackUnderflowError(self.regs.pc)
        self.regs.sp -= 1
        # スタックにはCALL命令自身のアドレスが積まれている
        self.regs.pc = self.regs.stack[self.regs.sp]
        self._advance()

    def _op_jp(self, ins: Instruction) -> None:
        """1NNN - ジャンプ"""
        self.regs.pc = ins.nnn

    def _op_call(self, ins: Instruction) -> None:
        """2NNN - サブルーチン呼び出し"""
        if self.regs.sp >= STACK_DEPTH:
            raise StackOverflowError(self.regs.pc, STACK_DEPTH)
        self.regs.stack[self.regs.sp] = self.regs.pc
        self.regs.sp += 1
        self.regs.pc = ins.nnn

    def _op_se_imm(self, ins: Instruction) -> None:
        """3XNN - VX == NN ならスキップ"""
        self._advance(self.regs.v[ins.x] == ins.nn)

    def _op_sne_imm(self, ins: Instruction) -> None:
        """4XNN - VX != NN ならスキップ"""
        self._advance(self.regs.v[ins.x] != ins.nn)

    def _op_se_reg(self, ins: Instruction) -> None:
        """5XY0 - VX == VY ならスキップ"""
        self._advance(self.regs.v[ins.x] == self.regs.v[ins.y])

    def _op_sne_reg(self, ins: Instruction) -> None:
        """9XY0 - VX != VY ならスキップ"""
        self._advance(self.regs.v[ins.x] != self.regs.v[ins.y])

    def _op_ld_imm(self, ins: Instruction) -> None:
        """6XNN - VX = NN"""
        self.regs.v[ins.x] = ins.nn
        self._advance()

    def _op_add_imm(self, ins: Instruction) -> None:
        """7XNN - VX += NN (キャリーなし)"""
        self.regs.v[ins.x] = (self.regs.v[ins.x] + ins.nn) & 0xFF
        self._advance()

    def _op_ld_reg(self, ins: Instruction) -> None:
        """8XY0 - VX = VY"""
        self.regs.v[ins.x] = self.regs.v[ins.y]
        self._advance()

    def _op_or(self, ins: Instruction) -> None:
        """8XY1 - VX |= VY, VF = 0"""
        self.regs.v[ins.x] |= self.regs.v[ins.y]
        self.regs.vf = 0
        self._advance()

    def _op_and(self, ins: Instruction) -> None:
        """8XY2 - VX &= VY, VF = 0"""
        self.regs.v[ins.x] &= self.regs.v[ins.y]
        self.regs.vf = 0
        self._advance()

    def _op_xor(self, ins: Instruction) -> None:
        """8XY3 - VX ^= VY, VF = 0"""
        self.regs.v[ins.x] ^= self.regs.v[ins.y]
        self.regs.vf = 0
        self._advance()

    def _op_add_reg(self, ins: Instruction) -> None:
        """8XY4 - VX += VY, VF = キャリー"""
        total = self.regs.v[ins.x] + self.regs.v[ins.y]
        self.regs.v[ins.x] = total & 0xFF
        self.regs.vf = 1 if total > 0xFF else 0
        self._advance()

    def _op_sub(self, ins: Instruction) -> None:
        """8XY5 - VX -= VY, VF = 0 (ボローあり) / 1 (なし)"""
        vx = self.regs.v[ins.x]
        vy = self.regs.v[ins.y]
        self.regs.vf = 0 if vy > vx else 1
        self.regs.v[ins.x] = (vx - vy) & 0xFF
        self._advance()

    def _op_subn(self, ins: Instruction) -> None:
        """8XY7 - VX = VY - VX, VF = 0 (ボローあり) / 1 (なし)"""
        vx = self.regs.v[ins.x]
        vy = self.regs.v[ins.y]
        self.regs.vf = 0 if vx > vy else 1
        self.regs.v[ins.x] = (vy - vx) & 0xFF
        self._advance()

    def _op_shr(self, ins: Instruction) -> None:
        """
        8XY6 - VYを右シフト

        対象はVX ではなくVY。VF にはビットマスクではなく VY | 1 が入る
        """
        self.regs.vf = self.regs.v[ins.y] | 0x1
        self.regs.v[ins.y] = self.regs.v[ins.y] >> 1
        self._advance()

    def _op_shl(self, ins: Instruction) -> None:
        """8XYE - VYを左シフト, VF = シフト前の最上位ビット"""
        self.regs.vf = self.regs.v[ins.y] >> 7
        self.regs.v[ins.y] = (self.regs.v[ins.y] << 1) & 0xFF
        self._advance()

    def _op_ld_i(self, ins: Instruction) -> None:
        """ANNN - I = NNN"""
        self.regs.i = ins.nnn
        self._advance()

    def _op_rnd(self, ins: Instruction) -> None:
        """CXNN - VX = rand[0, 255) & NN"""
        self.regs.v[ins.x] = self.rng.randrange(0, 255) & ins.nn
        self._advance()

    def _op_drw(self, ins: Instruction) -> None:
        """
        DXYN - スプライト描画

        (VX, VY) を起点に、I からの N バイトを1行8ピクセルとしてXOR描画する。
        座標は画面サイズでラップアラウンド。VF は命令開始時に0クリアされ、
        1→0 の消去が1つでもあれば1になる (途中で0に戻ることはない)。
        """
        fb = self.framebuffer
        start_x = self.regs.v[ins.x]
        start_y = self.regs.v[ins.y]
        sprite = self.memory.read_block(self.regs.i, ins.n)

        self.regs.vf = 0
        for row, bits in enumerate(sprite):
            y = (start_y + row) % fb.height
            for col in range(8):
                x = (start_x + col) % fb.width
                bit = (bits >> (7 - col)) & 1
                changed, erased = fb.xor_pixel(x, y, bit)
                if changed:
                    fb.draw_flag = True
                if erased:
                    self.regs.vf = 1

        self._advance()

    def _key_in(self, x: int) -> int:
        key = self.regs.v[x]
        if key >= KEY_COUNT:
            raise OutOfRangeAccessError("keypad", key, KEY_COUNT)
        return key

    def _op_skp(self, ins: Instruction) -> None:
        """EX9E - キーVXが押されていればスキップ"""
        self._advance(self.keypad.is_pressed(self._key_in(ins.x)))

    def _op_sknp(self, ins: Instruction) -> None:
        """EXA1 - キーVXが押されていなければスキップ"""
        self._advance(not self.keypad.is_pressed(self._key_in(ins.x)))

    def _op_ld_vx_dt(self, ins: Instruction) -> None:
        """FX07 - VX = 遅延タイマ"""
        self.regs.v[ins.x] = self.timers.delay.value
        self._advance()

    def _op_wait_key(self, ins: Instruction) -> None:
        """
        FX0A - キー入力待ち (ポーリング)

        いずれかのキーが押されていればPCを進める。押されていなければPCは
        そのままで、次のステップで同じ命令を再評価する。キー番号はVXに
        格納しない。
        """
        if self.keypad.any_pressed():
            self._advance()

    def _op_ld_dt_vx(self, ins: Instruction) -> None:
        """FX15 - 遅延タイマ = VX"""
        self.timers.set_delay(self.regs.v[ins.x])
        self._advance()

    def _op_ld_st_vx(self, ins: Instruction) -> None:
        """FX18 - サウンドタイマ = VX"""
        self.timers.set_sound(self.regs.v[ins.x])
        self._advance()

    def _op_add_i(self, ins: Instruction) -> None:
        """FX1E - I += VX, VF = 0xFFF超過"""
        self.regs.vf = 1 if self.regs.i + self.regs.v[ins.x] > 0xFFF else 0
        self.regs.i = (self.regs.i + self.regs.v[ins.x]) & 0xFFFF
        self._advance()

    def _op_ld_font(self, ins: Instruction) -> None:
        """FX29 - I = VXのフォントアドレス"""
        self.regs.i = FONT_ADDRESS + self.regs.v[ins.x] * FONT_GLYPH_SIZE
        self._advance()

    def _op_bcd(self, ins: Instruction) -> None:
        """FX33 - VXの10進3桁を I, I+1, I+2 に格納"""
        value = self.regs.v[ins.x]
        self.memory.write_block(self.regs.i, (value // 100, (value // 10) % 10, value % 10))
        self._advance()

    def _op_store(self, ins: Instruction) -> None:
        """FX55 - V0〜VX を I から格納"""
        self.memory.write_block(self.regs.i, self.regs.v[:ins.x + 1])
        self._advance()

    def _op_load(self, ins: Instruction) -> None:
        """FX65 - V0〜VX に I から読み込み"""
        values = self.memory.read_block(self.regs.i, ins.x + 1)
        self.regs.v[:ins.x + 1] = list(values)
        self._advance()

    def get_state(self) -> dict:
        """CPU状態を辞書形式で取得"""
        return {
            'pc': self.regs.pc,
            'i': self.regs.i,
            'sp': self.regs.sp,
            'stack': list(self.regs.stack[:self.regs.sp]),
            'registers': {f'V{n:X}': self.regs.v[n] for n in range(16)},
            'timers': self.timers.get_state(),
            'instructions': self.instruction_count,
        }
