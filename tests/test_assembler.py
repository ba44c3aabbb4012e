import pytest

from vmtranslator.assembler import Assembler, Machine, Code, run_assembly
from vmtranslator.errors import AssemblerError

SUMFIVE = '''
// sum 0 to 5
@i
M=0 // i = 0
@sum
M=0 // sum = 0
@5
D=A
@niter
M=D // niter = 5
(LOOP)
    // jump to end if niter - i <= 0
    @niter
    D=M
    @i
    D=D-M // D=niter-i
    @END
    D;JLE
    @i
    D=M
    @sum
    M=D+M // sum+=i
    @i
    M=M+1 // i+=1
    @LOOP
    0;JMP
(END)
'''

MULT_NAT = '''
// output = a * b by repeated addition, a = 3, b = 4
@3
D=A
@a
M=D
@4
D=A
@b
M=D
@output
M=0
(LOOP)
    @a
    D=M
    @END
    D;JEQ
    @a
    M=M-1
    @b
    D=M
    @output
    M=D+M
    @LOOP
    0;JMP
(END)
'''


def test_instruction_encoding():
    machine_code, linenos = Assembler()("@2\nD=A\nAM=M-1\n0;JMP\n")
    assert machine_code.split("\n") == [
        "0000000000000010",
        "1110110000010000",
        "1111110010101000",
        "1110101010000111",
    ]
    assert linenos == [0, 1, 2, 3]


def test_labels_and_variables():
    assembler = Assembler()
    assembler("@x\n(TOP)\n@TOP\n0;JMP\n@y\n")
    symbols = assembler.symbol_table
    assert symbols.getAddress("x") == 16
    assert symbols.getAddress("y") == 17
    assert symbols.getAddress("TOP") == 1
    assert symbols.getAddress("R13") == 13


def test_sumfive():
    assembler = Assembler()
    machine_code, linenos = assembler(SUMFIVE)
    machine = Machine()
    assert machine(machine_code, linenos)
    assert machine[assembler.symbol_table.getAddress("sum")] == 10


def test_mult_nat():
    m = run_assembly(MULT_NAT)
    assert m.halted
    assert m[18] == 12 # a, b, output


def test_words_wrap_around():
    m = run_assembly("@32767\nD=A\n@0\nM=D+1\n@1\nM=-1\nM=M-1\n")
    assert m[0] == -32768
    assert m[1] == -2


def test_initial_ram_and_step_limit():
    m = run_assembly("(LOOP)\n@LOOP\n0;JMP\n", ram={5: 9}, max_steps=50)
    assert not m.halted
    assert m.steps == 50
    assert m[5] == 9


def test_duplicate_label_raises_clear_error():
    with pytest.raises(AssemblerError, match="Duplicate label: dup"):
        Assembler()("(dup)\n@dup\n(dup)\n")


@pytest.mark.parametrize("line", ["D=Q", "X=D", "D;JXX", "@-1", "@40000"])
def test_invalid_instructions(line):
    with pytest.raises(AssemblerError):
        Assembler()(line)


def test_every_comp_has_a_function():
    for comp_code in Code.comp.values():
        assert Code.compFun(comp_code)(A=3, M=5, D=-2) is not None
