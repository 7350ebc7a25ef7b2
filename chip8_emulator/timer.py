"""
タイマモジュール

遅延タイマ・サウンドタイマ (8ビット ダウンカウンタ)

実時間ではなく、ステップ実行1回につき1カウント減算する
"""

from dataclasses import dataclass
from typing import Callable, List, Optional


@dataclass
class CountdownTimer:
    """8ビット ダウンカウンタ"""
    name: str
    value: int = 0

    @property
    def active(self) -> bool:
        return self.value > 0

    def set(self, value: int) -> None:
        self.value = value & 0xFF

    def tick(self) -> bool:
        """
        1カウント減算

        Returns:
            このティックで0に到達したか
        """
        if self.value == 0:
            return False
        self.value -= 1
        return self.value == 0


class TimerController:
    """
    タイマコントローラ

    遅延タイマとサウンドタイマを管理
    サウンド出力そのものは外部に委ね、開始/停止をコールバックで通知する
    """

    def __init__(self):
        self.delay = CountdownTimer("delay")
        self.sound = CountdownTimer("sound")

        # サウンド状態変更コールバック (True=鳴動開始, False=停止)
        self.sound_callbacks: List[Callable[[bool], None]] = []

    def register_sound_callback(self, callback: Callable[[bool], None]) -> None:
        """サウンドコールバックを登録"""
        self.sound_callbacks.append(callback)

    def set_delay(self, value: int) -> None:
        self.delay.set(value)

    def set_sound(self, value: int) -> None:
        was_active = self.sound.active
        self.sound.set(value)
        if self.sound.active != was_active:
            self._notify_sound(self.sound.active)

    def tick(self) -> None:
        """1ステップ分のティック"""
        self.delay.tick()
        if self.sound.tick():
            self._notify_sound(False)

    def _notify_sound(self, active: bool) -> None:
        for callback in self.sound_callbacks:
            callback(active)

    def reset(self) -> None:
        """タイマリセット"""
        was_active = self.sound.active
        self.delay.value = 0
        self.sound.value = 0
        if was_active:
            self._notify_sound(False)

    def get_state(self) -> dict:
        """タイマ状態取得"""
        return {
            'delay': self.delay.value,
            'sound': self.sound.value,
        }


def beep_printer(output: Optional[Callable[[str], None]] = None) -> Callable[[bool], None]:
    """端末ベルを鳴らすサウンドコールバックを生成"""
    write = output or (lambda s: print(s, end='', flush=True))

    def _callback(active: bool) -> None:
        if active:
            write('\a')

    return _callback
