"""
CHIP-8 Emulator Tests

エミュレータの基本動作テスト
"""

import os
import random
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from chip8_emulator import Chip8Emulator, EmulatorConfig
from chip8_emulator.errors import InvalidOpcodeError, LoadError
from chip8_emulator.memory import FONT_SET, PROGRAM_CAPACITY


def test_initial_state():
    """初期状態のテスト"""
    emu = Chip8Emulator()

    assert emu.get_register('PC') == 0x200
    assert emu.get_register('I') == 0
    assert emu.get_register('SP') == 0
    for n in range(16):
        assert emu.get_register(f'V{n:X}') == 0
    assert emu.memory.read_block(0, len(FONT_SET)) == FONT_SET
    assert emu.framebuffer.lit_count() == 0
    assert emu.get_register('DT') == 0
    assert emu.get_register('ST') == 0
    assert emu.get_register('VG') is None


def test_reset_clears_everything():
    """再初期化で全状態がクリアされる"""
    emu = Chip8Emulator()
    emu.load_program(bytes([0x6A, 0x02, 0xA3, 0x00, 0xD0, 0x01, 0x22, 0x00]))
    emu.memory.write8(0x300, 0xFF)
    emu.press_key(3)
    emu.run(max_instructions=4)

    assert emu.framebuffer.lit_count() == 8
    assert emu.cpu.regs.sp == 1

    emu.reset()
    assert emu.get_register('PC') == 0x200
    assert emu.get_register('VA') == 0
    assert emu.get_register('SP') == 0
    assert emu.framebuffer.lit_count() == 0
    assert not emu.framebuffer.draw_flag
    assert emu.keypad.snapshot() == [False] * 16
    assert emu.memory.read8(0x300) == 0
    assert emu.memory.read8(0x200) == 0
    assert emu.cpu.instruction_count == 0


def test_load_program_does_not_touch_state():
    """プログラムロードは初期化済みの状態を変更しない"""
    emu = Chip8Emulator()
    emu.cpu.regs.v[1] = 9
    emu.load_program(b"\x12\x00")

    assert emu.cpu.regs.v[1] == 9
    assert emu.get_register('PC') == 0x200
    assert emu.memory.read16(0x200) == 0x1200


def test_load_program_too_large():
    emu = Chip8Emulator()

    with pytest.raises(LoadError):
        emu.load_program(bytes(PROGRAM_CAPACITY + 1))


def test_load_rom_file(tmp_path):
    """ROMファイルからのロード"""
    rom = tmp_path / "test.ch8"
    rom.write_bytes(bytes([0x6A, 0x02]))

    emu = Chip8Emulator()
    assert emu.load_rom_file(rom) == 2
    emu.step()
    assert emu.get_register('VA') == 2


def test_load_rom_file_errors(tmp_path):
    emu = Chip8Emulator()

    with pytest.raises(LoadError):
        emu.load_rom_file(tmp_path / "missing.ch8")

    big = tmp_path / "big.ch8"
    big.write_bytes(bytes(PROGRAM_CAPACITY + 1))
    with pytest.raises(LoadError) as info:
        emu.load_rom_file(big)
    assert info.value.size == PROGRAM_CAPACITY + 1


def test_reload_program():
    emu = Chip8Emulator()

    with pytest.raises(LoadError):
        emu.reload_program()

    emu.load_program(bytes([0x6A, 0x02, 0x12, 0x02]))
    emu.run(max_instructions=3)
    emu.cpu.regs.v[0] = 5

    emu.reload_program()
    assert emu.get_register('PC') == 0x200
    assert emu.get_register('VA') == 0
    assert emu.get_register('V0') == 0
    assert emu.memory.read16(0x200) == 0x6A02


def test_reset_restarts_seeded_random_sequence():
    """seed指定時は再ロード後も同じ乱数列になる"""
    program = bytes([0xC0, 0xFF, 0xC1, 0xFF, 0xC2, 0xFF])
    emu = Chip8Emulator(EmulatorConfig(seed=1234))
    emu.load_program(program)
    emu.run(max_instructions=3)
    first = emu.cpu.regs.v[0:3]

    emu.reload_program()
    emu.run(max_instructions=3)
    assert emu.cpu.regs.v[0:3] == first


def test_injected_random_survives_reset():
    rng = random.Random(5)
    emu = Chip8Emulator(EmulatorConfig(rng=rng))
    emu.reset()

    assert emu.cpu.rng is rng


def test_run_counts_instructions():
    emu = Chip8Emulator(EmulatorConfig(max_instructions=10))
    emu.load_program(bytes([0x12, 0x00]))

    assert emu.run() == 10
    assert emu.cpu.instruction_count == 10
    assert emu.run(max_instructions=3) == 3
    assert not emu.running


def test_step_error_is_reported_and_raised():
    """エラーは記録・通知された上で呼び出し元へ送出される"""
    errors = []
    emu = Chip8Emulator()
    emu.on_error = errors.append
    emu.load_program(bytes([0x60, 0x01, 0xB0, 0x00]))

    with pytest.raises(InvalidOpcodeError):
        emu.run(max_instructions=5)

    assert len(errors) == 1
    assert isinstance(errors[0], InvalidOpcodeError)
    assert emu.last_error is not None and "B000" in emu.last_error
    assert emu.get_register('PC') == 0x202
    assert not emu.running


def test_stop_from_callback():
    """on_step から stop() すると run() はそのステップで終わる"""
    emu = Chip8Emulator()
    emu.load_program(bytes([0x12, 0x00]))
    emu.on_step = lambda pc, count: emu.stop() if count == 4 else None

    assert emu.run(max_instructions=100) == 4
    assert not emu.running


def test_dump_memory():
    emu = Chip8Emulator()
    emu.load_program(bytes([0x6A, 0x02, 0x12, 0x00]))

    assert emu.dump_memory(0x200, 4) == "200: 6A 02 12 00"
    assert emu.dump_memory(0x000, 5) == "000: F0 90 90 90 F0"


def test_on_step_callback():
    seen = []
    emu = Chip8Emulator()
    emu.on_step = lambda pc, count: seen.append((pc, count))
    emu.load_program(bytes([0x60, 0x01, 0x60, 0x02]))

    emu.step()
    emu.step()
    assert seen == [(0x202, 1), (0x204, 2)]


def test_trace_logging(caplog):
    emu = Chip8Emulator(EmulatorConfig(trace_enabled=True))
    emu.load_program(bytes([0x6A, 0x02]))

    with caplog.at_level("DEBUG", logger="chip8_emulator.emulator"):
        emu.step()
    assert "200  6A02" in caplog.text


def test_get_state():
    emu = Chip8Emulator()
    emu.load_program(bytes([0x6A, 0x02, 0x23, 0x00]))
    emu.press_key(2)
    emu.step()
    emu.step()

    state = emu.get_state()
    assert state['cpu']['registers']['VA'] == 2
    assert state['cpu']['pc'] == 0x300
    assert state['cpu']['stack'] == [0x202]
    assert state['keys'][2] is True
    assert state['last_error'] is None


def test_demo_program_draws_all_digits():
    """デモプログラムは16文字を描画して停止ループに入る"""
    from chip8_emulator.__main__ import DEMO_PROGRAM

    emu = Chip8Emulator()
    emu.load_program(DEMO_PROGRAM)
    emu.run(max_instructions=300)

    assert emu.get_register('PC') == 0x21C
    assert emu.get_register('V0') == 16
    # "0" の上辺 (x=1..4, y=2)
    assert all(emu.framebuffer.get_pixel(x, 2) == 1 for x in range(1, 5))
    assert emu.framebuffer.draw_flag


def run_all_tests():
    """全テスト実行"""
    return pytest.main([__file__, "-q"]) == 0


if __name__ == '__main__':
    success = run_all_tests()
    sys.exit(0 if success else 1)
