"""
フレームバッファモジュール

64x32 モノクロ画面と描画フラグ
"""

from typing import List, Tuple

from .errors import OutOfRangeAccessError


WIDTH = 64
HEIGHT = 32


class Framebuffer:
    """
    モノクロフレームバッファ

    draw_flag はインタプリタがセットし、外部レンダラが消費時にクリアする
    """

    width = WIDTH
    height = HEIGHT

    def __init__(self):
        self.pixels: List[bytearray] = [bytearray(WIDTH) for _ in range(HEIGHT)]
        self.draw_flag: bool = False

    def reset(self) -> None:
        """初期化 (描画フラグも下ろす)"""
        for row in self.pixels:
            row[:] = bytes(WIDTH)
        self.draw_flag = False

    def _check(self, x: int, y: int) -> None:
        if not 0 <= x < WIDTH:
            raise OutOfRangeAccessError("framebuffer x", x, WIDTH)
        if not 0 <= y < HEIGHT:
            raise OutOfRangeAccessError("framebuffer y", y, HEIGHT)

    def get_pixel(self, x: int, y: int) -> int:
        """(x, y) のピクセル値 (0 or 1)"""
        self._check(x, y)
        return self.pixels[y][x]

    def xor_pixel(self, x: int, y: int, bit: int) -> Tuple[bool, bool]:
        """
        ピクセルにXOR合成

        Returns:
            (変化したか, 1→0に消去されたか)
        """
        self._check(x, y)
        old = self.pixels[y][x]
        new = old ^ (bit & 1)
        self.pixels[y][x] = new
        return (old != new, old == 1 and new == 0)

    def clear(self) -> None:
        """画面クリア (描画フラグをセット)"""
        for row in self.pixels:
            row[:] = bytes(WIDTH)
        self.draw_flag = True

    def consume(self) -> bool:
        """描画フラグを読み取ってクリア"""
        changed = self.draw_flag
        self.draw_flag = False
        return changed

    def rows(self) -> List[bytes]:
        """全行のスナップショット"""
        return [bytes(row) for row in self.pixels]

    def lit_count(self) -> int:
        """点灯ピクセル数"""
        return sum(sum(row) for row in self.pixels)
