from typing import Optional


class VMError(Exception):
    '''base class of every translation failure; all of them abort the run'''

    def __init__(self, message:str, command:Optional[str]=None):
        super().__init__(message)
        self.message = message
        self.command = command # offending instruction text
        self.path = None # filled in by the translator
        self.lineno = None

    def locate(self, path:str, lineno:int)->'VMError':
        'attach source position, lineno is 0 based like the sanitizer output'
        self.path = path
        self.lineno = lineno
        return self

    def __str__(self):
        if self.path is None:
            return self.message
        return f'{self.path}:{self.lineno + 1}: {self.message}'


class UnknownCommand(VMError):
    '''token shape does not match any opcode or segment'''


class MalformedCommand(VMError):
    '''wrong number of tokens'''


class InvalidOperand(VMError):
    '''operand is not a representable 16 bit integer, or is out of the segment's window'''


class AssemblerError(VMError):
    '''invalid hack assembly handed to the assembler'''
