import re
from typing import Callable, Dict

from vmtranslator.commands import (
    Command, Arithmetic, Compare, Comparison, Segment,
    Push, Pop, Label, Goto, IfGoto, Function, Call, Return,
    ARITHMETIC_COMMANDS,
)
from vmtranslator.errors import UnknownCommand, MalformedCommand, InvalidOperand
from vmtranslator.utils import to_unsigned, WORD_SIZE

INTEGER = re.compile(r'[+-]?[0-9]+')
SEGMENTS = {segment.value: segment for segment in Segment}

# two token commands: keyword -> constructor taking the label name
BRANCH_COMMANDS: Dict[str, Callable[[str], Command]] = {
    'label': Label,
    'goto': Goto,
    'if-goto': IfGoto,
}

def parseOperand(token:str)->int:
    '''
    parse a 16 bit operand; 0..65535 is taken as is and -32768..-1 is
    reinterpreted as its 2's complement unsigned value, e.g., -1 becomes 65535
    '''
    if not INTEGER.fullmatch(token):
        raise InvalidOperand(f'{token} is not a valid 16 bit integer')
    value = int(token)
    if not -(1 << (WORD_SIZE - 1)) <= value < (1 << WORD_SIZE):
        raise InvalidOperand(f'{token} is not a valid 16 bit integer')
    return to_unsigned(value)

def parse(line:str)->Command:
    '''
    given one sanitized, non empty vm instruction return its Command
    >>> parse('push constant 7')
    Push(segment=<Segment.CONSTANT: 'constant'>, index=7)
    '''
    parts = line.split()

    if len(parts) == 1:
        op = parts[0]
        if op in ARITHMETIC_COMMANDS:
            return Arithmetic(op)
        if op in [c.value for c in Comparison]:
            return Compare(Comparison(op))
        if op == 'return':
            return Return()
        raise UnknownCommand(f'no one word command "{line}"', line)

    if len(parts) == 2:
        keyword, name = parts
        if keyword in BRANCH_COMMANDS:
            return BRANCH_COMMANDS[keyword](name)
        raise UnknownCommand(f'no two word command "{line}"', line)

    if len(parts) == 3:
        keyword, target, operand = parts
        try:
            arg = parseOperand(operand)
        except InvalidOperand as e:
            e.command = line
            raise

        if keyword == 'function':
            return Function(target, arg)
        if keyword == 'call':
            return Call(target, arg)
        if keyword in ('push', 'pop') and target in SEGMENTS:
            segment = SEGMENTS[target]
            if keyword == 'push':
                return Push(segment, arg)
            if segment is not Segment.CONSTANT: # constant has no pop form
                return Pop(segment, arg)
        raise UnknownCommand(f'no three word command "{line}"', line)

    raise MalformedCommand(f'"{line}" is not a valid vm command', line)
