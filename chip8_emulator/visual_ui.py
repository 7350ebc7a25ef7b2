"""
ビジュアルUI モジュール

フレームバッファをターミナルに表示する外部ドライバ
- 64x32画面のハーフブロック描画
- CPUレジスタ・タイマ・キーパッドの表示
- キーボード入力のキーパッド変換
- バックグラウンドスレッドでのステップ実行
"""

import os
import select
import sys
import threading
import time
from typing import Dict, Optional

from rich import box
from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .display import Framebuffer
from .emulator import Chip8Emulator
from .errors import Chip8Error


# キーボード配列 → キーパッド
#   1 2 3 4      1 2 3 C
#   Q W E R  ->  4 5 6 D
#   A S D F      7 8 9 E
#   Z X C V      A 0 B F
KEYBOARD_LAYOUT: Dict[str, int] = {
    '1': 0x1, '2': 0x2, '3': 0x3, '4': 0xC,
    'q': 0x4, 'w': 0x5, 'e': 0x6, 'r': 0xD,
    'a': 0x7, 's': 0x8, 'd': 0x9, 'f': 0xE,
    'z': 0xA, 'x': 0x0, 'c': 0xB, 'v': 0xF,
}


def render_framebuffer(framebuffer: Framebuffer) -> Text:
    """
    フレームバッファをテキスト化

    縦2ピクセルを1文字 (▀ ▄ █) にまとめるので、出力は height/2 行になる
    """
    rows = framebuffer.rows()
    text = Text(style="bright_green")
    for y in range(0, framebuffer.height, 2):
        top = rows[y]
        bottom = rows[y + 1]
        line = []
        for x in range(framebuffer.width):
            if top[x] and bottom[x]:
                line.append("█")
            elif top[x]:
                line.append("▀")
            elif bottom[x]:
                line.append("▄")
            else:
                line.append(" ")
        text.append("".join(line))
        if y + 2 < framebuffer.height:
            text.append("\n")
    return text


class RichVisualUI:
    """
    Rich ライブラリを使ったビジュアルUI
    """

    def __init__(self, emulator: Chip8Emulator, console: Optional[Console] = None):
        self.emu = emulator
        self.console = console or Console()
        self.running = False
        self._step_thread: Optional[threading.Thread] = None
        # step() と画面の読み取りを排他する
        self._lock = threading.Lock()

    def create_screen_panel(self) -> Panel:
        """画面パネルを作成"""
        return Panel(render_framebuffer(self.emu.framebuffer),
                     title="[bold green]CHIP-8[/bold green]",
                     border_style="green", box=box.ROUNDED, expand=False)

    def create_cpu_panel(self) -> Panel:
        """CPUステータスパネルを作成"""
        state = self.emu.cpu.get_state()

        table = Table(show_header=True, header_style="bold cyan", box=box.SIMPLE)
        table.add_column("Reg", style="cyan", width=4)
        table.add_column("Value", style="green", width=6)
        table.add_column("Reg", style="cyan", width=4)
        table.add_column("Value", style="green", width=6)

        regs = state['registers']
        for n in range(0, 16, 2):
            table.add_row(
                f"V{n:X}", f"0x{regs[f'V{n:X}']:02X}",
                f"V{n + 1:X}", f"0x{regs[f'V{n + 1:X}']:02X}"
            )

        info = Text()
        info.append("PC: ", style="bold yellow")
        info.append(f"0x{state['pc']:03X}  ", style="bright_green")
        info.append("I: ", style="bold yellow")
        info.append(f"0x{state['i']:03X}  ", style="bright_green")
        info.append("SP: ", style="bold yellow")
        info.append(f"{state['sp']}\n", style="bright_green")
        info.append(f"DT: {state['timers']['delay']}  ST: {state['timers']['sound']}\n")
        info.append(f"Instructions: {state['instructions']}")

        keys = Text("\nKeys: ")
        for key, pressed in enumerate(self.emu.keypad.snapshot()):
            keys.append(f"{key:X}", style="bold bright_yellow" if pressed else "dim")
            keys.append(" ")

        content = [info, table, keys]
        if self.emu.last_error:
            content.append(Text(f"\n{self.emu.last_error}", style="bold red"))

        return Panel(Group(*content), title="[bold blue]CPU[/bold blue]",
                     border_style="blue", box=box.ROUNDED)

    def create_help_panel(self) -> Panel:
        """ヘルプパネルを作成"""
        text = Text()
        text.append("Keypad: ", style="bold")
        text.append("1234 / QWER / ASDF / ZXCV", style="cyan")
        text.append("   Quit: ", style="bold")
        text.append("Esc", style="cyan")
        return Panel(text, box=box.ROUNDED, border_style="dim")

    def create_layout(self) -> Layout:
        """レイアウト作成"""
        layout = Layout()
        layout.split_column(
            Layout(name="main", size=20),
            Layout(name="help", size=3),
        )
        layout["main"].split_row(
            Layout(name="screen", size=70),
            Layout(name="cpu"),
        )
        return layout

    def update_layout(self, layout: Layout) -> None:
        """レイアウト更新"""
        layout["screen"].update(self.create_screen_panel())
        layout["cpu"].update(self.create_cpu_panel())
        layout["help"].update(self.create_help_panel())

    def refresh_layout(self, layout: Layout) -> bool:
        """
        ステップの合間に画面を読み取ってレイアウトを更新

        描画フラグが立っていた場合のみ画面パネルを作り直し、Trueを返す
        """
        with self._lock:
            changed = self.emu.framebuffer.consume()
            if changed:
                layout["screen"].update(self.create_screen_panel())
            layout["cpu"].update(self.create_cpu_panel())
        return changed

    def _step_loop(self) -> None:
        """ステップ実行スレッド"""
        interval = self.emu.config.step_interval
        while self.running:
            try:
                with self._lock:
                    self.emu.step()
            except Chip8Error:
                self.running = False
                break
            time.sleep(interval)

    def handle_key(self, key: str) -> None:
        """キー入力を処理 (端末は離鍵を通知しないので一定時間後に解放)"""
        if key == '\x1b':
            self.running = False
            return

        pad = KEYBOARD_LAYOUT.get(key.lower())
        if pad is None:
            return

        self.emu.press_key(pad)
        release = threading.Timer(self.emu.config.key_hold_time, self.emu.release_key, args=(pad,))
        release.daemon = True
        release.start()

    def run_interactive(self) -> None:
        """インタラクティブモードで実行"""
        layout = self.create_layout()
        self.update_layout(layout)
        self.running = True

        self._step_thread = threading.Thread(target=self._step_loop, daemon=True)
        self._step_thread.start()

        restore = _enter_cbreak()
        try:
            with Live(layout, console=self.console, refresh_per_second=30, screen=True):
                while self.running:
                    self.refresh_layout(layout)

                    # 非ブロッキングでキー入力を取得
                    if sys.stdin in select.select([sys.stdin], [], [], 0.03)[0]:
                        self.handle_key(sys.stdin.read(1))

        except KeyboardInterrupt:
            pass
        finally:
            self.running = False
            restore()
            self._step_thread.join()

        self.show_static()
        if self.emu.last_error:
            self.console.print(Text(f"Stopped: {self.emu.last_error}", style="bold red"))

    def show_static(self) -> None:
        """静的表示（1回だけ表示）"""
        self.console.print(self.create_screen_panel())
        self.console.print(self.create_cpu_panel())


def _enter_cbreak():
    """端末を1文字入力モードにし、復元関数を返す"""
    if os.name != 'posix' or not sys.stdin.isatty():
        return lambda: None

    import termios
    import tty

    fd = sys.stdin.fileno()
    saved = termios.tcgetattr(fd)
    tty.setcbreak(fd)
    return lambda: termios.tcsetattr(fd, termios.TCSADRAIN, saved)
