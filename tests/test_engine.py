"""
Test suite for the Befunge-93 execution engine.

Tests cover:
  - Digit literals and arithmetic (truncating / and %, 32-bit wrap)
  - Empty-stack behaviour of every popping instruction
  - Direction changes, conditionals, bridge, random walk
  - Toroidal IP movement in all four directions
  - String mode
  - g / p memory access and the 80x25 access bounds
  - Extension-gated instructions
  - Input / output instructions
  - Stepping API: halt, step limit, breakpoints, trace
"""

import io

import pytest

from b93vm import Engine, StopReason, Terminal, load_program
from b93vm.engine import TRACE_LIMIT
from b93vm.grid import GRID_COLS, GRID_ROWS, ROW_STRIDE
from b93vm.pointer import Direction, DIRECTIONS


def _engine(source, stdin: bytes = b"", extensions: bool = False, seed=None):
    """Build an engine over source with in-memory I/O."""
    if isinstance(source, str):
        source = source.encode("latin-1")
    out = io.BytesIO()
    term = Terminal(stdin=io.BytesIO(stdin), stdout=out)
    vm = Engine(load_program(source), extensions=extensions, terminal=term, seed=seed)
    return vm, out


def _run(source, stdin: bytes = b"", extensions: bool = False, max_steps: int = 10_000):
    """Run source and return (stdout bytes, engine, stop reason)."""
    vm, out = _engine(source, stdin=stdin, extensions=extensions, seed=0)
    reason = vm.run(max_steps=max_steps)
    return out.getvalue(), vm, reason


# ─── Literals and arithmetic ─────────────────────

class TestArithmetic:
    def test_add_prints_sum(self):
        out, _, reason = _run("19+.@")
        assert out == b"10 "
        assert reason is StopReason.HALT

    def test_digits_print_in_source_order(self):
        out, _, _ = _run("1.2.3.9.0.@")
        assert out == b"1 2 3 9 0 "

    def test_subtract_uses_earlier_operand_on_left(self):
        out, _, _ = _run("52-.@")
        assert out == b"3 "

    def test_multiply(self):
        out, _, _ = _run("67*.@")
        assert out == b"42 "

    def test_divide(self):
        out, _, _ = _run("72/.@")
        assert out == b"3 "

    def test_modulo(self):
        out, _, _ = _run("72%.@")
        assert out == b"1 "

    def test_divide_truncates_toward_zero(self):
        # 0 - 7 = -7; -7 / 2 = -3 (not -4)
        out, _, _ = _run("07-2/.@")
        assert out == b"-3 "

    def test_modulo_sign_follows_dividend(self):
        out, _, _ = _run("07-2%.@")
        assert out == b"-1 "

    def test_divide_by_zero_raises(self):
        with pytest.raises(ZeroDivisionError):
            _run("10/@")

    def test_modulo_by_zero_raises(self):
        with pytest.raises(ZeroDivisionError):
            _run("10%@")

    def test_results_wrap_to_int32(self):
        vm, out = _engine("*.@")
        vm.stack.push(0x10000)
        vm.stack.push(0x8000)
        vm.run(max_steps=10)
        assert out.getvalue() == b"-2147483648 "

    def test_negative_number_printing(self):
        out, _, _ = _run("05-.@")
        assert out == b"-5 "


# ─── Empty stack ─────────────────────

class TestEmptyStack:
    def test_not_on_empty_pushes_one(self):
        out, _, _ = _run("!.@")
        assert out == b"1 "

    def test_not_values(self):
        out, _, _ = _run("5!.0!.@")
        assert out == b"0 1 "

    def test_dup_on_empty_pushes_zero(self):
        _, vm, _ = _run(":@")
        assert vm.stack.to_list() == [0]

    def test_dup_copies_top(self):
        out, _, _ = _run("5:..@")
        assert out == b"5 5 "

    def test_print_on_empty_prints_zero(self):
        out, _, _ = _run(".@")
        assert out == b"0 "

    def test_subtract_on_empty(self):
        out, _, _ = _run("5-.@")
        # b = 0 (implicit), a = 5
        assert out == b"-5 "

    def test_greater_on_empty(self):
        out, _, _ = _run("`.@")
        assert out == b"0 "

    def test_discard_on_empty_is_noop(self):
        out, vm, _ = _run("$$.@")
        assert out == b"0 "
        assert len(vm.stack) == 0


# ─── Comparison and stack shuffling ─────────────────────

class TestStackOps:
    def test_greater_true(self):
        out, _, _ = _run("52`.@")
        assert out == b"1 "

    def test_greater_false(self):
        out, _, _ = _run("25`.0 0`.@")
        assert out == b"0 0 "

    def test_swap_two(self):
        out, _, _ = _run("12\\..@")
        assert out == b"1 2 "

    def test_swap_single_value_slides_zero_beneath(self):
        _, vm, _ = _run("5\\@")
        assert vm.stack.to_list() == [0, 5]

    def test_swap_empty_is_noop(self):
        _, vm, _ = _run("\\@")
        assert vm.stack.to_list() == []

    def test_discard(self):
        out, _, _ = _run("12$.@")
        assert out == b"1 "


# ─── Control flow ─────────────────────

class TestControlFlow:
    def test_bridge_skips_one_cell(self):
        out, _, _ = _run("1#2.@")
        assert out == b"1 "

    def test_horizontal_if_zero_goes_east(self):
        out, _, _ = _run("#@0_1.@")
        assert out == b"1 "

    def test_horizontal_if_nonzero_goes_west(self):
        # '_' sends the IP back over '1' onto the '@' that '#' jumped
        out, vm, reason = _run("#@1_")
        assert out == b""
        assert reason is StopReason.HALT
        assert vm.ip.position == (1, 0)

    def test_vertical_if_zero_goes_south(self):
        out, _, _ = _run("0|\n 1\n .\n @")
        assert out == b"1 "

    def test_vertical_if_nonzero_goes_north(self):
        # North wraps to row 24 and walks up to the '@' on row 3
        out, vm, _ = _run("1|\n 1\n .\n @")
        assert out == b""
        assert vm.ip.position == (1, 3)

    def test_arrows(self):
        src = "v   @\n" \
              ">1v \n" \
              "  >.^"
        out, _, _ = _run(src)
        assert out == b"1 "

    def test_halt_does_not_move(self):
        _, vm, reason = _run("   @")
        assert reason is StopReason.HALT
        assert vm.ip.position == (3, 0)
        assert vm.halted
        assert vm.step() is StopReason.HALT

    def test_random_sets_one_of_four_directions(self):
        vm, _ = _engine("?", seed=1234)
        seen = set()
        for _ in range(200):
            vm.ip.reset()
            vm.step()
            seen.add(vm.ip.direction)
        assert seen == set(DIRECTIONS)

    def test_random_is_reproducible_with_seed(self):
        a, _ = _engine("?", seed=7)
        b, _ = _engine("?", seed=7)
        dirs_a, dirs_b = [], []
        for _ in range(20):
            a.ip.reset()
            b.ip.reset()
            a.step()
            b.step()
            dirs_a.append(a.ip.direction)
            dirs_b.append(b.ip.direction)
        assert dirs_a == dirs_b

    def test_unknown_characters_are_noops(self):
        out, _, _ = _run("xyz AB1.@")
        assert out == b"1 "

    def test_self_modifying_halt(self):
        # p writes '@' into column 6, which stops the IP before "1."
        out, vm, reason = _run('"@"60p 1.@')
        assert out == b""
        assert reason is StopReason.HALT
        assert vm.ip.position == (6, 0)


# ─── Toroidal movement ─────────────────────

class TestWrapping:
    @pytest.mark.parametrize("start, direction, expected", [
        ((80, 7), Direction.EAST, (0, 7)),
        ((0, 7), Direction.WEST, (80, 7)),
        ((12, 0), Direction.NORTH, (12, 24)),
        ((12, 24), Direction.SOUTH, (12, 0)),
    ])
    def test_edge_reentry(self, start, direction, expected):
        vm, _ = _engine(b"")
        vm.ip.x, vm.ip.y = start
        vm.ip.direction = direction
        vm.step()
        assert vm.ip.position == expected

    def test_west_program_crosses_padding_column(self):
        # '<' at col 0, then cols 80..2 are blank, '@' at col 1
        _, vm, reason = _run("<@")
        assert reason is StopReason.HALT
        assert vm.steps == 1 + 79 + 1

    def test_north_program_wraps_to_bottom_row(self):
        _, vm, reason = _run("^\n@")
        assert reason is StopReason.HALT
        assert vm.steps == 1 + 23 + 1

    def test_bridge_over_edge(self):
        vm, _ = _engine(b"")
        vm.grid.put(79, 0, ord('#'))
        vm.ip.x = 79
        vm.step()
        # jumped over padding column 80 onto column 0
        assert vm.ip.position == (0, 0)


# ─── String mode ─────────────────────

class TestStringMode:
    def test_pushes_codes_in_order(self):
        _, vm, _ = _run('"AB"@')
        assert vm.stack.to_list() == [65, 66]

    def test_closing_quote_not_pushed(self):
        _, vm, _ = _run('"A B"@')
        assert vm.stack.to_list() == [65, 32, 66]

    def test_print_string(self):
        out, _, _ = _run('"!iH",,,@')
        assert out == b"Hi!"

    def test_blank_cells_push_zero(self):
        # No closing quote on the row: the string wraps back to the opener,
        # pushing the 78 blank text cells and the padding column as zeros
        vm, _ = _engine('"A')
        vm.step()
        assert vm.stack.to_list() == [65] + [0] * 79
        # stopped on the opening quote, then the normal move
        assert vm.ip.position == (1, 0)


# ─── Grid memory ─────────────────────

class TestGridMemory:
    def test_get_reads_program_text(self):
        out, _, _ = _run("00g.@")
        assert out == b"48 "

    def test_put_writes_cell(self):
        _, vm, _ = _run("55+90p@")
        assert vm.grid.get(9, 0) == 10

    @pytest.mark.parametrize("x, y, value", [
        (10, 3, 65), (79, 24, 127), (0, 24, -5), (40, 12, 0),
    ])
    def test_put_then_get_round_trip(self, x, y, value):
        vm, out = _engine("pg.@")
        # p pops y, x, value; g then pops the second y, x
        for v in (x, y, value, x, y):
            vm.stack.push(v)
        vm.run(max_steps=10)
        assert out.getvalue() == f"{value} ".encode()

    def test_round_trip_every_cell(self):
        vm, _ = _engine(b"")
        for y in range(GRID_ROWS):
            for x in range(GRID_COLS):
                assert vm.grid.put(x, y, (x + y) % 100)
        for y in range(GRID_ROWS):
            for x in range(GRID_COLS):
                assert vm.grid.get(x, y) == (x + y) % 100

    def test_put_to_padding_column_is_dropped(self):
        vm, _ = _engine("p@")
        before = vm.grid.raw()
        for v in (65, 80, 0):
            vm.stack.push(v)
        vm.run(max_steps=10)
        assert vm.grid.raw() == before
        assert vm.grid.cell(80, 0) == 0

    def test_get_from_padding_column_reads_zero(self):
        vm, out = _engine("g.@")
        vm.grid.store_raw(80, ord('Z'))
        assert vm.grid.cell(80, 0) == ord('Z')
        vm.stack.push(80)
        vm.stack.push(0)
        vm.run(max_steps=10)
        assert out.getvalue() == b"0 "

    @pytest.mark.parametrize("x, y", [(-1, 0), (0, -1), (0, 25), (200, 3)])
    def test_out_of_range_access(self, x, y):
        vm, out = _engine("pg.@")
        before = vm.grid.raw()
        for v in (x, y, 99, x, y):
            vm.stack.push(v)
        vm.run(max_steps=10)
        assert out.getvalue() == b"0 "
        assert vm.grid.raw() == before

    def test_cells_hold_signed_chars(self):
        vm, _ = _engine(b"")
        vm.grid.put(1, 1, 200)
        assert vm.grid.get(1, 1) == 200 - 256


# ─── Extensions ─────────────────────

class TestExtensions:
    def test_hex_digit_noop_without_extensions(self):
        out, _, _ = _run("a.@", extensions=False)
        assert out == b"0 "

    def test_hex_digit_with_extensions(self):
        out, _, _ = _run("a.@", extensions=True)
        assert out == b"10 "

    def test_all_hex_digits(self):
        out, _, _ = _run("fedcba.......@", extensions=True)
        assert out == b"10 11 12 13 14 15 0 "

    def test_fetch_next_cell(self):
        out, _, _ = _run("'A.@", extensions=True)
        assert out == b"65 "

    def test_fetch_noop_without_extensions(self):
        out, _, _ = _run("'A.@", extensions=False)
        assert out == b"0 "


# ─── Input / output ─────────────────────

class TestIO:
    def test_read_number(self):
        out, _, _ = _run("&.@", stdin=b"7")
        assert out == b"7 "

    def test_read_two_numbers(self):
        out, _, _ = _run("&&+.@", stdin=b"12 30\n")
        assert out == b"42 "

    def test_read_char(self):
        out, _, _ = _run("~.@", stdin=b"A")
        assert out == b"65 "

    def test_read_char_at_eof(self):
        out, _, _ = _run("~.@", stdin=b"")
        assert out == b"-1 "

    def test_print_char_uses_low_byte(self):
        vm, out = _engine(",@")
        vm.stack.push(256 + 65)
        vm.run(max_steps=10)
        assert out.getvalue() == b"A"


# ─── Stepping API ─────────────────────

class TestStepping:
    def test_step_limit(self):
        _, vm, reason = _run(b"", max_steps=50)
        assert reason is StopReason.TIMEOUT
        assert vm.steps == 50

    def test_breakpoint_stops_before_cell_and_resumes(self):
        vm, out = _engine("1.2.@")
        vm.add_breakpoint((2, 0))
        assert vm.run(max_steps=100) is StopReason.BREAK
        assert out.getvalue() == b"1 "
        assert vm.ip.position == (2, 0)
        assert vm.run(max_steps=100) is StopReason.HALT
        assert out.getvalue() == b"1 2 "

    def test_remove_breakpoint(self):
        vm, _ = _engine("1.2.@")
        vm.add_breakpoint((2, 0))
        vm.remove_breakpoint((2, 0))
        assert vm.run(max_steps=100) is StopReason.HALT

    def test_trace_records_each_instruction(self):
        vm, _ = _engine("1.@")
        vm.enable_trace()
        vm.run(max_steps=10)
        lines = vm.get_trace().splitlines()
        assert len(lines) == 3
        assert lines[0] == "(0,0) '1' stack=[]"
        assert lines[1] == "(1,0) '.' stack=[1]"
        vm.clear_trace()
        assert vm.get_trace() == ""

    def test_trace_keeps_only_latest_lines(self):
        vm, _ = _engine(b"")
        vm.enable_trace()
        total = TRACE_LIMIT + 50
        assert vm.run(max_steps=total) is StopReason.TIMEOUT
        lines = vm.get_trace().splitlines()
        assert len(lines) == TRACE_LIMIT
        # blank row 0: the IP just walks east, wrapping every ROW_STRIDE cells
        assert lines[-1].startswith(f"({(total - 1) % ROW_STRIDE},0) ")

    def test_grid_dimensions(self):
        vm, _ = _engine(b"")
        assert (vm.grid.cols, vm.grid.rows) == (ROW_STRIDE, GRID_ROWS)
