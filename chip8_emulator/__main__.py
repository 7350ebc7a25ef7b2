"""
CHIP-8 Emulator CLI Entry Point

Usage:
    python -m chip8_emulator [options] [rom]

Options:
    -i, --interactive   Run in the terminal UI
    -n, --steps N       Execute N steps headless and print the screen
    -s, --seed SEED     Seed for the random instruction
    -v, --verbose       Verbose output (instruction trace)
    -h, --help          Show help
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from . import __version__
from .emulator import Chip8Emulator, EmulatorConfig
from .errors import Chip8Error
from .timer import beep_printer
from .visual_ui import RichVisualUI


def positive_int(value):
    """ステップ数 (1以上の整数)"""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value}")
    return number


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='CHIP-8 Virtual Machine Interpreter',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m chip8_emulator game.ch8 -i          # Play in the terminal
    python -m chip8_emulator game.ch8 -n 500      # Run 500 steps, print the screen
    python -m chip8_emulator --demo -n 200        # Run the built-in demo
"""
    )

    parser.add_argument('rom', nargs='?', help='ROM file to load')
    parser.add_argument('-i', '--interactive', action='store_true', help='Run in the terminal UI')
    parser.add_argument('-n', '--steps', type=positive_int, default=1000,
                        help='Steps to execute in headless mode (default: 1000)')
    parser.add_argument('-s', '--seed', type=int, default=None, help='Random seed')
    parser.add_argument('--interval', type=float, default=0.002,
                        help='Seconds between steps in interactive mode')
    parser.add_argument('--bell', action='store_true', help='Ring the terminal bell on sound')
    parser.add_argument('--demo', action='store_true', help='Run demo program')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )

    console = Console()
    config = EmulatorConfig(
        seed=args.seed,
        step_interval=args.interval,
        trace_enabled=args.verbose,
    )
    emu = Chip8Emulator(config)
    if args.bell:
        emu.on_sound(beep_printer())

    console.print(f"[bold]CHIP-8 Emulator v{__version__}[/bold]")

    # デモモード
    if args.demo:
        emu.load_program(DEMO_PROGRAM)
        console.print("Demo program loaded")

    # ROMロード
    elif args.rom:
        filepath = Path(args.rom)
        try:
            size = emu.load_rom_file(filepath)
        except Chip8Error as e:
            console.print(f"[red]Load failed: {escape(str(e))}[/red]")
            return 1
        console.print(f"Loaded {filepath.name}: {size} bytes")

    else:
        parser.print_help()
        return 1

    ui = RichVisualUI(emu, console=console)

    if args.interactive:
        ui.run_interactive()
        return 0 if emu.last_error is None else 1

    # ヘッドレス実行
    try:
        executed = emu.run(max_instructions=args.steps)
    except Chip8Error as e:
        console.print(f"[red]Execution stopped after {emu.cpu.instruction_count} steps: {escape(str(e))}[/red]")
        ui.show_static()
        return 1

    console.print(f"Executed {executed} instructions")
    ui.show_static()
    return 0


# 16進フォント 0〜F を2行に並べて表示し、その場でループするデモ
DEMO_PROGRAM = bytes([
    0x00, 0xE0,  # 200: CLS
    0x60, 0x00,  # 202: V0 = 0      (文字)
    0x61, 0x01,  # 204: V1 = 1      (X)
    0x62, 0x02,  # 206: V2 = 2      (Y)
    0xF0, 0x29,  # 208: I = font(V0)
    0xD1, 0x25,  # 20A: DRW V1, V2, 5
    0x70, 0x01,  # 20C: V0 += 1
    0x71, 0x08,  # 20E: V1 += 8
    0x30, 0x08,  # 210: if V0 == 8 skip
    0x12, 0x18,  # 212: JP 218
    0x61, 0x01,  # 214: V1 = 1      (改行)
    0x62, 0x0A,  # 216: V2 = 10
    0x30, 0x10,  # 218: if V0 == 16 skip
    0x12, 0x08,  # 21A: JP 208
    0x12, 0x1C,  # 21C: JP 21C     (停止ループ)
])


if __name__ == '__main__':
    sys.exit(main())
