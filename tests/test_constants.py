"""Tests for constant-table construction."""

import pytest

from goasmify.constants import (
    ConstantParser,
    build_table,
    parse_number,
    render_data,
    restrict_table,
    split_operands,
)
from goasmify.errors import UnresolvedPicReference
from goasmify.model import Label, Table

from listings import MACH_O, SCALE


class TestConstantParser:
    """Tests for collecting constant data."""

    def test_labels_and_offsets(self):
        constants = build_table(SCALE.splitlines())
        assert constants.table.name == "LCDATA1"
        assert constants.table.labels == (Label(".LCPI0_0", 0), Label(".LCPI0_1", 16))
        assert len(constants.data) == 20

    def test_values_little_endian(self):
        constants = build_table(SCALE.splitlines())
        assert constants.data[:8] == (1).to_bytes(8, "little")
        assert constants.data[16:20] == (3).to_bytes(4, "little")

    def test_alignment_between_constants(self):
        listing = [
            '\t.section\t.rodata.cst4,"aM",@progbits,4',
            ".LCPI0_0:",
            "\t.byte\t7",
            "\t.p2align\t3",
            ".LCPI0_1:",
            "\t.short\t0xffff",
        ]
        constants = build_table(listing)
        assert constants.table.lookup(".LCPI0_1").offset == 8
        assert constants.data == b"\x07" + b"\x00" * 7 + b"\xff\xff"

    def test_strings(self):
        listing = [
            '\t.section\t.rodata.str1.1,"aMS",@progbits,1',
            ".L.str:",
            '\t.asciz\t"hi\\303"',
        ]
        constants = build_table(listing)
        assert constants.data == b"hi\xc3\x00"

    def test_comments_stripped(self):
        listing = ["\t.section\t.rodata", ".LCPI1_0:", "\t.long\t1065353216          # float 1"]
        assert build_table(listing).data == (1065353216).to_bytes(4, "little")

    def test_hash_inside_string_kept(self):
        listing = [
            '\t.section\t.rodata.str1.1,"aMS",@progbits,1',
            ".L.str:",
            '\t.asciz\t"a # b"                 # comment',
        ]
        constants = build_table(listing)
        assert constants.data == b"a # b\x00"
        assert not constants.warnings

    def test_comma_inside_string_kept(self):
        listing = ["\t.section\t.rodata", ".L.str:", '\t.ascii\t"x, y", "z"']
        assert build_table(listing).data == b"x, yz"

    def test_mach_o_literal_section(self):
        constants = build_table(MACH_O.splitlines())
        assert constants.table.labels == (Label("LCPI0_0", 0),)
        assert len(constants.data) == 16

    def test_text_section_ignored(self):
        listing = ["\t.text", "sum:", "\t.long\t5"]
        constants = build_table(listing)
        assert not constants.table.is_present()
        assert constants.data == b""

    def test_negative_values(self):
        parser = ConstantParser()
        parser.parse(["\t.section\t.rodata", "c:", "\t.long\t-1"])
        assert bytes(parser.data) == b"\xff\xff\xff\xff"

    def test_symbolic_value_warns(self):
        constants = build_table(["\t.section\t.rodata", ".LJTI0_0:", "\t.long\t.LBB0_3-.LJTI0_0"])
        assert constants.data == b"\x00\x00\x00\x00"
        assert constants.warnings

    def test_custom_name(self):
        assert build_table(SCALE.splitlines(), "LCDATA2").table.name == "LCDATA2"


class TestOperands:
    """Tests for operand splitting and number parsing."""

    def test_split(self):
        assert split_operands("1, 2,3") == ["1", "2", "3"]

    def test_trailing_comment(self):
        assert split_operands("0x3f800000    ## float 1") == ["0x3f800000"]

    def test_quoted(self):
        assert split_operands('"a,#\\" b", 1') == ['"a,#\\" b"', "1"]

    def test_numbers(self):
        assert parse_number("0x10") == 16
        assert parse_number("010") == 8
        assert parse_number("-3") == -3
        assert parse_number("'A'") == 65

    def test_symbol_rejected(self):
        with pytest.raises(ValueError, match="Cannot evaluate"):
            parse_number(".LBB0_3-.LJTI0_0")


class TestRenderData:
    """Tests for DATA/GLOBL emission."""

    def test_render(self):
        lines = render_data(build_table(SCALE.splitlines()))
        assert lines == [
            "DATA LCDATA1<>+0x000(SB)/8, $0x0000000000000001",
            "DATA LCDATA1<>+0x008(SB)/8, $0x0000000000000002",
            "DATA LCDATA1<>+0x010(SB)/8, $0x0000000000000003",
            "GLOBL LCDATA1<>(SB), 8, $24",
        ]


class TestRestrictTable:
    """Only referenced constants are passed to a subroutine."""

    TABLE = Table(name="LCDATA1", labels=(Label(".LCPI0_0", 0), Label(".LCPI1_0", 16)))

    def test_referenced_only(self):
        lines = ["\tvmovaps xmm0, xmmword ptr [rip + .LCPI1_0]"]
        table = restrict_table(self.TABLE, lines)
        assert table.labels == (Label(".LCPI1_0", 16),)
        assert table.name == "LCDATA1"

    def test_none_referenced(self):
        assert not restrict_table(self.TABLE, ["\tret"]).is_present()

    def test_unknown_symbol(self):
        lines = [
            "\tvmovaps xmm0, xmmword ptr [rip + .LCPI1_0]",
            "\tmov rax, qword ptr [rip + counter]",
        ]
        with pytest.raises(UnresolvedPicReference, match="counter"):
            restrict_table(self.TABLE, lines)

    def test_unknown_symbol_without_constants(self):
        with pytest.raises(UnresolvedPicReference):
            restrict_table(Table(), ["\tmov rax, qword ptr [rip + counter]"])
