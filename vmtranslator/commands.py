from dataclasses import dataclass
from enum import Enum

CommandType = Enum(
    'CommandType',
    ['C_ARITHMETIC', # e.g., add, sub, neg, eq ...
     'C_PUSH', # push <segment> index, e.g., push argument 0 // stack.push(argument[0])
     'C_POP', # pop <segment> index, e.g., pop argument 0 // argument[0] = stack.pop()
     'C_LABEL', # label symbol, marks location in code, scope is within the function
     'C_GOTO',  # goto label, unconditional jump
     'C_IF', # if-goto label, pc = label if stack.pop() != 0 else pc + 1
     'C_FUNCTION', # function f k, where k is num local variables
     'C_RETURN', # return, return control to the caller
     'C_CALL', # call f n, where f is a function and n is number of arguments
    ]
)

UNARY_COMMANDS = ['neg', 'not']
BINARY_COMMANDS = ['add', 'sub', 'and', 'or']
ARITHMETIC_COMMANDS = BINARY_COMMANDS + UNARY_COMMANDS


class Comparison(Enum):
    EQ = 'eq'
    GT = 'gt'
    LT = 'lt'


class Segment(Enum):
    ARGUMENT = 'argument' # dynamically allocated per function, point to a cell on stack, R2
    LOCAL = 'local' # dynamically allocated per function, point to a cell on stack, R1
    THIS = 'this' # pointer to heap: pointer[0]
    THAT = 'that' # pointer to heap: pointer[1]
    STATIC = 'static' # shared by all functions in the same .vm file, M[16:256]
    CONSTANT = 'constant' # not memory, pushes the literal
    POINTER = 'pointer' # this and that base addresses themselves, M[3:5]
    TEMP = 'temp' # shared by all functions, M[5:13]

    @property
    def is_indirect(self)->bool:
        return self in _BASE_SYMBOLS

    @property
    def base_symbol(self)->str:
        'the register holding the base address of an indirect segment'
        return _BASE_SYMBOLS[self]


_BASE_SYMBOLS = {
    Segment.ARGUMENT: 'ARG',
    Segment.LOCAL: 'LCL',
    Segment.THIS: 'THIS',
    Segment.THAT: 'THAT',
}


@dataclass(frozen=True)
class Command:
    '''one parsed vm instruction; str() gives back its canonical vm text'''
    command_type = None


@dataclass(frozen=True)
class Arithmetic(Command):
    op: str
    command_type = CommandType.C_ARITHMETIC

    @property
    def is_unary(self)->bool:
        return self.op in UNARY_COMMANDS

    def __str__(self):
        return self.op


@dataclass(frozen=True)
class Compare(Command):
    comparison: Comparison
    command_type = CommandType.C_ARITHMETIC

    def __str__(self):
        return self.comparison.value


@dataclass(frozen=True)
class Push(Command):
    segment: Segment
    index: int
    command_type = CommandType.C_PUSH

    def __str__(self):
        return f'push {self.segment.value} {self.index}'


@dataclass(frozen=True)
class Pop(Command):
    segment: Segment
    index: int
    command_type = CommandType.C_POP

    def __str__(self):
        return f'pop {self.segment.value} {self.index}'


@dataclass(frozen=True)
class Label(Command):
    name: str
    command_type = CommandType.C_LABEL

    def __str__(self):
        return f'label {self.name}'


@dataclass(frozen=True)
class Goto(Command):
    name: str
    command_type = CommandType.C_GOTO

    def __str__(self):
        return f'goto {self.name}'


@dataclass(frozen=True)
class IfGoto(Command):
    name: str
    command_type = CommandType.C_IF

    def __str__(self):
        return f'if-goto {self.name}'


@dataclass(frozen=True)
class Function(Command):
    name: str
    n_locals: int
    command_type = CommandType.C_FUNCTION

    def __str__(self):
        return f'function {self.name} {self.n_locals}'


@dataclass(frozen=True)
class Call(Command):
    name: str
    n_args: int
    command_type = CommandType.C_CALL

    def __str__(self):
        return f'call {self.name} {self.n_args}'


@dataclass(frozen=True)
class Return(Command):
    command_type = CommandType.C_RETURN

    def __str__(self):
        return 'return'
