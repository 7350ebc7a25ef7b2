"""
メモリ・フレームバッファ・キーパッド・タイマのテスト
"""

import threading

import pytest

from chip8_emulator.display import Framebuffer, HEIGHT, WIDTH
from chip8_emulator.errors import LoadError, OutOfRangeAccessError
from chip8_emulator.keypad import Keypad
from chip8_emulator.memory import Chip8Memory, FONT_SET, PROGRAM_CAPACITY, PROGRAM_START
from chip8_emulator.timer import TimerController, beep_printer


# === メモリ ===

def test_memory_font_installed():
    """フォントは0x000から1文字5バイト"""
    memory = Chip8Memory()

    assert len(FONT_SET) == 16 * 5
    assert memory.read_block(0x000, len(FONT_SET)) == FONT_SET
    assert memory.read8(PROGRAM_START) == 0


def test_memory_bounds():
    memory = Chip8Memory()

    memory.write8(0xFFF, 0x1FF)
    assert memory.read8(0xFFF) == 0xFF

    with pytest.raises(OutOfRangeAccessError):
        memory.read8(0x1000)
    with pytest.raises(OutOfRangeAccessError):
        memory.write8(-1, 0)
    with pytest.raises(OutOfRangeAccessError):
        memory.read16(0xFFF)


def test_memory_read16_is_big_endian():
    memory = Chip8Memory()
    memory.write_block(0x300, [0x12, 0x34])

    assert memory.read16(0x300) == 0x1234


def test_load_program_limits():
    memory = Chip8Memory()

    assert memory.load_program(bytes(PROGRAM_CAPACITY)) == PROGRAM_CAPACITY

    with pytest.raises(LoadError) as info:
        memory.load_program(bytes(PROGRAM_CAPACITY + 1))
    assert info.value.capacity == PROGRAM_CAPACITY


def test_load_program_keeps_font():
    memory = Chip8Memory()
    memory.load_program(b"\xAA\xBB")

    assert memory.read_block(0, 5) == FONT_SET[:5]
    assert memory.read_block(PROGRAM_START, 2) == b"\xAA\xBB"


def test_dump_hex():
    memory = Chip8Memory()
    memory.load_program(bytes(range(4)))

    assert memory.dump_hex(0x200, 4) == "200: 00 01 02 03"


# === フレームバッファ ===

def test_framebuffer_dimensions():
    fb = Framebuffer()

    assert (fb.width, fb.height) == (64, 32) == (WIDTH, HEIGHT)
    assert fb.get_pixel(63, 31) == 0
    assert not fb.draw_flag


def test_framebuffer_xor():
    fb = Framebuffer()

    assert fb.xor_pixel(1, 2, 1) == (True, False)
    assert fb.get_pixel(1, 2) == 1
    assert fb.xor_pixel(1, 2, 0) == (False, False)
    assert fb.xor_pixel(1, 2, 1) == (True, True)
    assert fb.get_pixel(1, 2) == 0


def test_framebuffer_clear_and_consume():
    """clear() は描画フラグを立て、consume() で下ろす"""
    fb = Framebuffer()
    fb.xor_pixel(0, 0, 1)
    fb.clear()

    assert fb.lit_count() == 0
    assert fb.consume() is True
    assert fb.draw_flag is False
    assert fb.consume() is False


def test_framebuffer_out_of_range():
    fb = Framebuffer()

    with pytest.raises(OutOfRangeAccessError):
        fb.get_pixel(64, 0)
    with pytest.raises(OutOfRangeAccessError):
        fb.get_pixel(0, 32)


# === キーパッド ===

def test_keypad_press_release_idempotent():
    keypad = Keypad()

    keypad.press(0xF)
    keypad.press(0xF)
    assert keypad.is_pressed(0xF)
    assert keypad.any_pressed()

    keypad.release(0xF)
    keypad.release(0xF)
    assert not keypad.is_pressed(0xF)
    assert not keypad.any_pressed()


def test_keypad_rejects_invalid_key():
    keypad = Keypad()

    with pytest.raises(ValueError):
        keypad.press(16)
    with pytest.raises(ValueError):
        keypad.release(-1)


def test_keypad_concurrent_events():
    """複数スレッドからの押下/解放"""
    keypad = Keypad()

    def worker(key):
        for _ in range(500):
            keypad.press(key)
            keypad.release(key)
        keypad.press(key)

    threads = [threading.Thread(target=worker, args=(k,)) for k in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert keypad.snapshot() == [True] * 16

    keypad.reset()
    assert keypad.snapshot() == [False] * 16


# === タイマ ===

def test_timer_controller_tick():
    timers = TimerController()
    timers.set_delay(2)
    timers.set_sound(0x1FF)

    assert timers.sound.value == 0xFF
    timers.tick()
    timers.tick()
    timers.tick()
    assert timers.get_state() == {'delay': 0, 'sound': 0xFC}


def test_timer_reset_notifies_sound_stop():
    events = []
    timers = TimerController()
    timers.register_sound_callback(events.append)

    timers.set_sound(3)
    timers.reset()
    assert events == [True, False]


def test_beep_printer():
    written = []
    callback = beep_printer(written.append)

    callback(True)
    callback(False)
    assert written == ['\a']
