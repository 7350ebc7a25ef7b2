"""
キーパッドモジュール

16キー (0x0-0xF) の押下状態

押下/解放イベントは入力スレッドから、読み取りはステップ実行スレッドから
行われるため、状態はロックで保護する
"""

import threading
from enum import IntEnum
from typing import List


KEY_COUNT = 16


class KeyState(IntEnum):
    """キー状態"""
    RELEASED = 0
    PRESSED = 1


class Keypad:
    """16キーのキーパッド"""

    def __init__(self):
        self._lock = threading.Lock()
        self._keys: List[KeyState] = [KeyState.RELEASED] * KEY_COUNT

    @staticmethod
    def _validate(key: int) -> None:
        if not 0 <= key < KEY_COUNT:
            raise ValueError(f"Key out of range: {key} (expected 0-15)")

    def press(self, key: int) -> None:
        """キーを押す"""
        self._validate(key)
        with self._lock:
            self._keys[key] = KeyState.PRESSED

    def release(self, key: int) -> None:
        """キーを離す"""
        self._validate(key)
        with self._lock:
            self._keys[key] = KeyState.RELEASED

    def is_pressed(self, key: int) -> bool:
        self._validate(key)
        with self._lock:
            return self._keys[key] == KeyState.PRESSED

    def any_pressed(self) -> bool:
        with self._lock:
            return KeyState.PRESSED in self._keys

    def snapshot(self) -> List[bool]:
        """全キーの状態を取得"""
        with self._lock:
            return [state == KeyState.PRESSED for state in self._keys]

    def reset(self) -> None:
        """全キーを解放"""
        with self._lock:
            self._keys = [KeyState.RELEASED] * KEY_COUNT
