"""
BCDカウンタ サンプルプログラム

CHIP-8仮想環境でカウンタを10進3桁表示するデモ
"""

import sys
import os
import time

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rich.console import Console

from chip8_emulator import Chip8Emulator
from chip8_emulator.visual_ui import render_framebuffer


def create_counter_program():
    """カウンタ表示プログラムを生成"""
    # CHIP-8 アセンブリ:
    # loop:
    #   CLS
    #   LD I, 0x300         ; BCD格納先
    #   LD B, V3            ; V3 を10進3桁に
    #   LD V2, [I]          ; V0〜V2 に各桁
    #   LD V4, 2            ; X
    #   LD V5, 2            ; Y
    #   LD F, V0 / DRW      ; 百の位
    #   ADD V4, 5
    #   LD F, V1 / DRW      ; 十の位
    #   ADD V4, 5
    #   LD F, V2 / DRW      ; 一の位
    #   ADD V3, 1
    #   JP loop

    return bytes([
        0x00, 0xE0,  # 200: CLS
        0xA3, 0x00,  # 202: LD I, 0x300
        0xF3, 0x33,  # 204: LD B, V3
        0xF2, 0x65,  # 206: LD V2, [I]
        0x64, 0x02,  # 208: LD V4, 2
        0x65, 0x02,  # 20A: LD V5, 2
        0xF0, 0x29,  # 20C: LD F, V0
        0xD4, 0x55,  # 20E: DRW V4, V5, 5
        0x74, 0x05,  # 210: ADD V4, 5
        0xF1, 0x29,  # 212: LD F, V1
        0xD4, 0x55,  # 214: DRW V4, V5, 5
        0x74, 0x05,  # 216: ADD V4, 5
        0xF2, 0x29,  # 218: LD F, V2
        0xD4, 0x55,  # 21A: DRW V4, V5, 5
        0x73, 0x01,  # 21C: ADD V3, 1
        0x12, 0x00,  # 21E: JP 200
    ])


def main():
    console = Console()
    console.print("[bold]CHIP-8 BCD Counter Demo[/bold]")
    console.print("=" * 40)

    emu = Chip8Emulator()
    emu.load_program(create_counter_program())

    # 1周 = 16命令
    for _ in range(12):
        emu.run(max_instructions=16 * 7)
        if emu.framebuffer.consume():
            console.print(render_framebuffer(emu.framebuffer))
            console.print(f"V3 = {emu.get_register('V3')}")
        time.sleep(0.2)

    console.print("Demo finished.")


if __name__ == '__main__':
    main()
