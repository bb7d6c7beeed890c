"""Tests for the layout-independent line rewriter."""

import pytest

from goasmify import rewriter
from goasmify.rewriter import DISABLED_PREFIX


class TestStripComments:
    """Tests for trailing comment removal."""

    def test_trailing_comment(self):
        line, skip = rewriter.strip_comments("\tvmovups ymm0, ymmword ptr [rdi]  ## spill")
        assert line == "\tvmovups ymm0, ymmword ptr [rdi]"
        assert not skip

    def test_single_hash_comment(self):
        line, skip = rewriter.strip_comments("sum:                     # @sum")
        assert line == "sum:"
        assert not skip

    def test_comment_only_line_is_skipped(self):
        assert rewriter.strip_comments("    ## InlineAsm Start") == ("", True)

    def test_no_comment(self):
        assert rewriter.strip_comments("\tmov rax, rdi") == ("\tmov rax, rdi", False)

    def test_blank_line_is_kept(self):
        assert rewriter.strip_comments("") == ("", False)

    @pytest.mark.parametrize("line", [
        "\tadd rdi, 32  ## loop step",
        "\tvzeroupper # restore",
        "## whole line",
        "\tjne .LBB0_1",
    ])
    def test_idempotent(self, line):
        once, _ = rewriter.strip_comments(line)
        twice, _ = rewriter.strip_comments(once)
        assert once == twice


class TestLabelsAndJumps:
    """Tests for local label and jump normalization."""

    @pytest.mark.parametrize("block", ["0_1", "3_12", "10_2"])
    def test_label_loses_leading_dot(self, block):
        line, label = rewriter.fix_labels(f".LBB{block}:")
        assert line == f"LBB{block}:"
        assert label == f"LBB{block}"

    def test_macho_label_unchanged(self):
        assert rewriter.fix_labels("LBB0_1:") == ("LBB0_1:", "LBB0_1")

    def test_non_label(self):
        assert rewriter.fix_labels("\tmov eax, 1") == ("\tmov eax, 1", "")

    @pytest.mark.parametrize("mnemonic", ["jne", "je", "jmp", "jae", "jg"])
    def test_jump_upper_cased(self, mnemonic):
        line, instruction, label = rewriter.upper_case_jumps(f"{mnemonic} .LBB0_3")
        assert line == f"{mnemonic.upper()} LBB0_3"
        assert instruction == mnemonic.upper()
        assert label == "LBB0_3"

    def test_jump_keeps_indentation(self):
        line, instruction, _ = rewriter.upper_case_jumps("\tjmp\t.LBB0_2")
        assert line == "\tJMP LBB0_2"
        assert instruction == "JMP"

    def test_non_jump(self):
        assert rewriter.upper_case_jumps("\tadd rdi, 32") == ("\tadd rdi, 32", "", "")


class TestCalls:
    """Tests for call normalization."""

    def test_plain_call(self):
        assert rewriter.upper_case_calls("call helper") == "CALL helper"

    def test_indented_call(self):
        assert rewriter.upper_case_calls("\tcall\thelper") == "\tCALL helper"

    def test_memcpy_is_substituted(self):
        assert rewriter.upper_case_calls("call _memcpy") == "CALL clib·_memcpy(SB)"

    def test_other_c_runtime_call_passes_through(self):
        assert rewriter.upper_case_calls("call _memset") == "CALL _memset"

    def test_non_call(self):
        assert rewriter.upper_case_calls("\tmov rax, rdi") == "\tmov rax, rdi"


class TestDisableUntranslated:
    """Tests for the lower-case mnemonic guard."""

    def test_lower_case_instruction_is_commented_out(self):
        line = rewriter.disable_untranslated("\tpopcnt rax, rdi")
        assert line == DISABLED_PREFIX + "popcnt rax, rdi"
        assert rewriter.is_disabled(line)

    def test_upper_case_instruction_is_kept(self):
        assert rewriter.disable_untranslated("\tJNE LBB0_1") == "\tJNE LBB0_1"

    def test_label_is_kept(self):
        assert rewriter.disable_untranslated("LBB0_1:") == "LBB0_1:"

    def test_empty_line(self):
        assert rewriter.disable_untranslated("") == ""


class TestOperandFixes:
    """Tests for size markers, shifts and movabs."""

    def test_ptr_removed(self):
        line = rewriter.remove_size_markers("mov rax, qword ptr [rbp + 16]")
        assert line == "mov rax, qword [rbp + 16]"

    def test_vector_width_removed(self):
        line = rewriter.remove_size_markers("vmovaps xmm0, xmmword ptr [rip + .LCPI0_0]")
        assert line == "vmovaps xmm0, [rip + .LCPI0_0]"

    def test_ymmword_removed(self):
        line = rewriter.remove_size_markers("vaddps ymm0, ymm0, ymmword ptr [rdi]")
        assert line == "vaddps ymm0, ymm0, [rdi]"

    def test_shift_without_count(self):
        assert rewriter.fix_shift_instructions("shr eax") == "shr eax, 1"

    def test_arithmetic_shift_without_count(self):
        assert rewriter.fix_shift_instructions("sar rdx") == "sar rdx, 1"

    def test_shift_with_count(self):
        assert rewriter.fix_shift_instructions("shr eax, 3") == "shr eax, 3"

    def test_movabs(self):
        assert rewriter.fix_movabs_instructions("movabs rax, 5") == "mov rax, 5"

    def test_mov_unchanged(self):
        assert rewriter.fix_movabs_instructions("mov rax, 5") == "mov rax, 5"
