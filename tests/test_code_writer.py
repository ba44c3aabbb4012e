import re

import pytest

from vmtranslator.code_writer import CodeWriter, RETURN_LABEL, COMP_LABEL, STACK_BASE
from vmtranslator.commands import Segment, Push, Pop, Call
from vmtranslator.errors import InvalidOperand
from vmtranslator.parser import parse


def generate(writer, *lines):
    out = []
    for line in lines:
        out.extend(writer.generate(parse(line)))
    return out


def defined_labels(lines):
    return [l[1:-1] for l in lines if l.startswith("(")]


def referenced_symbols(lines):
    return [l.split("//")[0].strip()[1:] for l in lines if l.startswith("@")]


@pytest.fixture
def writer():
    return CodeWriter("Main")


def test_push_constant_fragment(writer):
    assert writer.generate(Push(Segment.CONSTANT, 7)) == [
        "@7", "D=A", "@SP", "M=M+1", "A=M-1", "M=D",
    ]


def test_wide_constant_is_loaded_through_its_complement(writer):
    lines = writer.generate(Push(Segment.CONSTANT, 65535))
    assert lines[:2] == ["@0", "D=!A"]
    assert all(not l.startswith("@65535") for l in lines)


def test_every_comparison_gets_its_own_label(writer):
    lines = generate(writer, "eq", "gt", "lt", "eq", "lt")
    labels = [l for l in defined_labels(lines) if l.startswith(COMP_LABEL)]
    assert len(labels) == 5
    assert len(set(labels)) == 5
    assert writer.comparison_count == 5


def test_return_subroutine_is_emitted_once(writer):
    lines = generate(writer,
                     "function Main.a 0", "push constant 1", "return",
                     "function Main.b 0", "push constant 2", "return",
                     "function Main.c 1", "return")
    assert defined_labels(lines).count(RETURN_LABEL) == 1
    # every return jumps to the shared code, which follows the first jump
    assert referenced_symbols(lines).count(RETURN_LABEL) == 3
    assert lines.count("@R14") == 2
    assert writer.return_emitted


def test_first_return_jumps_into_the_shared_code(writer):
    lines = generate(writer, "function Main.a 0", "return")
    assert lines[1:4] == [f"@{RETURN_LABEL}", "0;JMP", f"({RETURN_LABEL})"]


def test_later_returns_are_a_single_jump(writer):
    generate(writer, "function Main.a 0", "return")
    assert writer.generate(parse("return")) == [f"@{RETURN_LABEL}", "0;JMP"]


def test_same_label_in_two_functions_does_not_collide(writer):
    lines = generate(writer,
                     "function Main.a 0", "label LOOP", "goto LOOP",
                     "function Main.b 0", "label LOOP", "if-goto LOOP")
    assert defined_labels(lines) == ["Main.a", "Main.a$LOOP", "Main.b", "Main.b$LOOP"]
    assert "@Main.a$LOOP" in lines
    assert "@Main.b$LOOP" in lines


def test_label_outside_a_function_is_scoped_to_the_file(writer):
    assert writer.generate(parse("label START")) == ["(Main$START)"]
    writer.setFileName("Other")
    assert writer.generate(parse("goto START")) == ["@Other$START", "0;JMP"]


def test_function_without_locals_emits_no_stores(writer):
    assert writer.generate(parse("function Main.f 0")) == ["(Main.f)"]
    assert writer.current_function == "Main.f"


def test_function_zeroes_its_locals(writer):
    lines = writer.generate(parse("function Main.f 3"))
    assert lines[0] == "(Main.f)"
    assert lines.count("M=0") == 3


def test_call_return_labels_are_unique_across_files(writer):
    lines = generate(writer, "call Main.f 0", "call Main.f 0")
    writer.setFileName("Other")
    lines += generate(writer, "call Main.f 2")
    ret_labels = [l for l in defined_labels(lines) if l.startswith("$RET.")]
    assert ret_labels == ["$RET.Main.0", "$RET.Main.1", "$RET.Other.2"]
    assert writer.call_count == 3


def test_call_computes_arg_from_argument_count(writer):
    lines = writer.generate(Call("Main.f", 3))
    assert "@8" in lines # 5 saved words + 3 arguments
    assert lines[-3:] == ["@Main.f", "0;JMP", "($RET.Main.0)"]


def test_call_with_wide_argument_count(writer):
    lines = writer.generate(Call("Main.f", 40000))
    # 40005 does not fit an A instruction: SP - 40005 == SP + !40005 + 1
    i = lines.index("D=D+A")
    assert lines[i - 1:i + 3] == ["@25530", "D=D+A", "D=D+1", "@ARG"]


def test_static_is_keyed_by_file(writer):
    assert writer.generate(Pop(Segment.STATIC, 3))[-2:] == ["@Main.3", "M=D"]
    writer.setFileName("Math")
    assert writer.generate(Push(Segment.STATIC, 3))[:2] == ["@Math.3", "D=M"]


def test_pointer_and_temp_addresses(writer):
    assert writer.generate(Push(Segment.POINTER, 0))[0] == "@THIS"
    assert writer.generate(Push(Segment.POINTER, 1))[0] == "@THAT"
    assert writer.generate(Pop(Segment.TEMP, 7))[-2:] == ["@12", "M=D"]


@pytest.mark.parametrize("command", [
    Push(Segment.POINTER, 2), Pop(Segment.POINTER, 5), Push(Segment.TEMP, 8), Pop(Segment.TEMP, 65535),
])
def test_out_of_window_indices(writer, command):
    with pytest.raises(InvalidOperand):
        writer.generate(command)


def test_indirect_pop_computes_address_before_popping(writer):
    lines = writer.generate(Pop(Segment.LOCAL, 4))
    assert lines.index("@LCL") < lines.index("AM=M-1")


def test_bootstrap_sets_sp_and_calls_sys_init():
    writer = CodeWriter()
    lines = writer.writeBootstrap()
    assert lines[:4] == [f"@{STACK_BASE}", "D=A", "@SP", "M=D"]
    assert "@Sys.init" in lines
    assert defined_labels(lines) == ["$RET.BOOTSTRAP.0"]
    assert writer.file_name is None


def test_writer_output_is_append_only(writer):
    first = generate(writer, "push constant 1")
    second = generate(writer, "push constant 2", "add")
    assert writer.lines == first + second


def test_inert_function_references_no_undefined_label(writer):
    lines = generate(writer, "function Foo 2", "return")
    defined = set(defined_labels(lines))
    for symbol in referenced_symbols(lines):
        if "$" in symbol:
            assert symbol in defined
    assert not any(s.startswith("$RET.") for s in referenced_symbols(lines))


def test_all_emitted_labels_are_unique(writer):
    lines = generate(writer,
                     "function Main.a 1", "label L", "push constant 1", "push constant 2", "lt",
                     "if-goto L", "call Main.b 0", "return",
                     "function Main.b 0", "label L", "push constant 1", "push constant 2", "gt",
                     "call Main.a 0", "eq", "return")
    labels = defined_labels(lines)
    assert len(labels) == len(set(labels))
    assert all(re.fullmatch(r"[A-Za-z_.$:][\w.$:]*", l) for l in labels)


@pytest.mark.parametrize("program", [
    ["label ret.0", "call Foo 0"],
    ["function Main 0", "label ret.0", "call Main 0", "return"],
])
def test_call_return_labels_never_equal_user_labels(writer, program):
    labels = defined_labels(generate(writer, *program))
    assert len(labels) == len(set(labels))
