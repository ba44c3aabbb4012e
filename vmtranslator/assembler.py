import logging
from io import StringIO
from typing import Tuple, List, Dict, Optional
from enum import Enum

import numpy as np

from vmtranslator.errors import AssemblerError
from vmtranslator.utils import pretty_format_dict, dec2bin, bin2dec, isInt, to_unsigned
from vmtranslator.utils import binary_flip, binary_and, binary_or, binary_add, binary_neg

logger = logging.getLogger('vmtranslator.assembler')

CommandType = Enum('CommandType',
                   ['A_COMMAND', # @symbol
                    'C_COMMAND', # dest=comp;jump
                    'L_COMMAND'] # (symbol)
                  )

MEMORY_SIZE = 1 << 15 # RAM[0:16384] plus screen and keyboard
VARIABLE_BASE = 16

class Code:
    _dest_lists = ['null', 'M', 'D', 'MD', 'A', 'AM', 'AD', 'AMD']
    _jump_lists = ['null', 'JGT', 'JEQ', 'JGE', 'JLT', 'JNE', 'JLE', 'JMP']
    dest = {name:dec2bin(i, 3) for i, name in enumerate(_dest_lists)}
    jump = {name:dec2bin(i, 3) for i, name in enumerate(_jump_lists)}
    comp = {
        '0': '0101010',
        '1': '0111111',
        '-1': '0111010',
        'D': '0001100',
        'A': '0110000',
        '!D': '0001101',
        '!A': '0110001',
        '-D': '0001111',
        '-A': '0110011',
        'D+1': '0011111',
        'A+1': '0110111',
        'D-1': '0001110',
        'A-1': '0110010',
        'D+A': '0000010',
        'D-A': '0010011',
        'A-D': '0000111',
        'D&A': '0000000',
        'D|A': '0010101',
        'M': '1110000',
        '!M': '1110001',
        '-M': '1110011',
        'M+1': '1110111',
        'M-1': '1110010',
        'D+M': '1000010',
        'D-M': '1010011',
        'M-D': '1000111',
        'D&M': '1000000',
        'D|M': '1010101',
    }
    compCode2mnemonic = {v: k for k, v in comp.items()}
    jumpCode2mnemonic = {v: k for k, v in jump.items()}
    destCode2mnemonic = {v: k for k, v in dest.items()}

    # A/D: A/D register value, M: RAM[A] value; every output wraps to one word
    _alu = {
        '0': lambda A, M, D: 0,
        '1': lambda A, M, D: 1,
        '-1': lambda A, M, D: -1,
        'D': lambda A, M, D: D,
        'A': lambda A, M, D: A,
        '!D': lambda A, M, D: binary_flip(D),
        '!A': lambda A, M, D: binary_flip(A),
        '-D': lambda A, M, D: binary_neg(D),
        '-A': lambda A, M, D: binary_neg(A),
        'D+1': lambda A, M, D: binary_add(D, 1),
        'A+1': lambda A, M, D: binary_add(A, 1),
        'D-1': lambda A, M, D: binary_add(D, -1),
        'A-1': lambda A, M, D: binary_add(A, -1),
        'D+A': lambda A, M, D: binary_add(D, A),
        'D-A': lambda A, M, D: binary_add(D, -A),
        'A-D': lambda A, M, D: binary_add(A, -D),
        'D&A': lambda A, M, D: binary_and(D, A),
        'D|A': lambda A, M, D: binary_or(D, A),
        'M': lambda A, M, D: M,
        '!M': lambda A, M, D: binary_flip(M),
        '-M': lambda A, M, D: binary_neg(M),
        'M+1': lambda A, M, D: binary_add(M, 1),
        'M-1': lambda A, M, D: binary_add(M, -1),
        'D+M': lambda A, M, D: binary_add(D, M),
        'D-M': lambda A, M, D: binary_add(D, -M),
        'M-D': lambda A, M, D: binary_add(M, -D),
        'D&M': lambda A, M, D: binary_and(D, M),
        'D|M': lambda A, M, D: binary_or(D, M),
    }

    @staticmethod
    def compFun(comp_code:str):
        assert comp_code in Code.compCode2mnemonic, f'{comp_code} is not a comp code'
        return Code._alu[Code.compCode2mnemonic[comp_code]]

class SymbolTable:
    def __init__(self):
        self.d = {
            # symbol to RAM address
            'SP': 0,
            'LCL': 1,
            'ARG': 2,
            'THIS': 3,
            'THAT': 4,
            'SCREEN': 16384,
            'KBD': 24576
        }
        for i in range(16): # R0-R15
            self.d[f'R{i}'] = i

    def addEntry(self, symbol:str, address:int):
        if symbol in self.d:
            raise AssemblerError(f'Duplicate label: {symbol}', symbol)
        self.d[symbol] = address

    def contains(self, symbol:str)->bool:
        return symbol in self.d

    def getAddress(self, symbol:str)->int:
        return self.d[symbol]

    def __repr__(self):
        ret = f'{"symbol":10s}|{"address":10s}\n' + '-' * 21
        for k, v in self.d.items():
            ret += f'\n{k:10s}|{str(v):10s}'
        return ret

class Parser:

    def __init__(self, fs: StringIO):
        # fs is stream of assembly code
        self.filestream = fs
        self.machine_code_lineno = 0 # machine code line number
        self.ass_code_lineno = 0 # assembly code line number

    def advance(self)->Tuple[bool, str, int]:
        'return (ok, next command, reference_line_in_orig_file)'
        while True:
            l = self.filestream.readline()
            if l == '':
                # EOF
                return False, '', self.ass_code_lineno

            self.ass_code_lineno += 1
            if '//' in l:
                l = l[:l.index('//')]
            l = l.strip()
            if l == '':
                continue

            if not l.startswith('('):
                # pseudo command doesn't advance lineno
                self.machine_code_lineno += 1
            # ass_code_lineno - 1 to restore the original value before advance
            return True, l, self.ass_code_lineno - 1

    def commandType(self, command:str)->CommandType:
        if command.startswith('@'):
            return CommandType.A_COMMAND
        elif command.startswith('('):
            return CommandType.L_COMMAND
        else:
            return CommandType.C_COMMAND

    def symbol(self, command:str)->str:
        assert self.commandType(command) != CommandType.C_COMMAND, 'symbol does not apply to C command'
        if command.startswith('@'):
            return command[1:].strip()
        if command[-1] != ')':
            raise AssemblerError(f'label {command} must end in )', command)
        return command[1:-1].strip()

    def dest(self, command:str)->str:
        o = 'null'
        if '=' in command:
            o = command.split('=')[0]
            if o not in Code.dest:
                raise AssemblerError(f'{o} is not a dest in {command}', command)
        return o

    def comp(self, command:str)->str:
        o = command
        if ';' in command:
            o = o.split(';')[0]
        if '=' in command:
            o = o.split('=')[1]
        if o not in Code.comp:
            raise AssemblerError(f'{o} is not a comp in {command}', command)
        return o

    def jump(self, command:str)->str:
        o = 'null'
        if ';' in command:
            o = command.split(';')[1]
            if o not in Code.jump:
                raise AssemblerError(f'{o} is not a jump in {command}', command)
        return o

class Machine: # hack machine
    '''
    Hack CPU simulator: 16 bit words, A and D registers, RAM and ROM.
    RAM is a numpy int16 array so every stored word wraps like the hardware.
    '''
    def __init__(self, memory_size:int=MEMORY_SIZE, max_steps:int=100000, verbose:bool=False):
        self.memory_size = memory_size
        self.max_steps = max_steps # max runtime allowed
        self.verbose = verbose

    def load(self, machine_code:str, ass_linenos:Optional[List[int]]=None,
             ram:Optional[Dict[int, int]]=None):
        '''machine_code: one 16 bit instruction per line; ram: initial RAM values'''
        codes = [c for c in machine_code.split('\n') if c != '']
        self.rom = [self._decode(c) for c in codes]
        self.pc = 0 # program counter
        self.A = 0 # A register
        self.D = 0 # D register
        self.ram = np.zeros(self.memory_size, dtype=np.int16)
        self.steps = 0
        self.assembly_linenos = ass_linenos # useful for debugging
        for address, value in (ram or {}).items():
            self[address] = value

    def __getitem__(self, address:int)->int:
        return int(self.ram[to_unsigned(address) % self.memory_size])

    def __setitem__(self, address:int, value:int):
        self.ram[to_unsigned(address) % self.memory_size] = binary_add(value, 0)

    def _decode(self, command:str):
        # A: 0vvvvvvvvvvvvvvv, C: 111a cccccc ddd jjj
        if command[0] == '0': # A command: @value
            return (True, bin2dec(command), None, None)
        comp, dest, jump = command[3:-6], command[-6:-3], command[-3:]
        return (False, Code.compFun(comp), dest, jump)

    @property
    def halted(self)->bool:
        return self.pc >= len(self.rom)

    def advance(self)->bool:
        ## fetch instruction
        if self.halted:
            return False
        is_a, comp, dest, jump = self.rom[self.pc]

        if self.verbose:
            ref = '' if self.assembly_linenos is None else f', assembly_lineno: {self.assembly_linenos[self.pc]}'
            logger.debug('instr %d%s: D: %d, A: %d, SP: %d', self.pc, ref, self.D, self.A, self[0])

        self.pc += 1
        self.steps += 1

        if is_a:
            self.A = comp
            return True

        ## C command: dest=comp;jump
        oldA = self.A
        o = comp(oldA, self[oldA], self.D)

        if dest[0] == '1':
            self.A = o
        if dest[1] == '1':
            self.D = o
        if dest[2] == '1':
            self[oldA] = o

        if (jump[0] == '1' and o < 0) or (jump[1] == '1' and o == 0) or (jump[2] == '1' and o > 0):
            self.pc = to_unsigned(oldA)
        return True

    def run(self, max_steps:Optional[int]=None)->bool:
        '''run until the program falls off the end of ROM, return False when max_steps ran out first'''
        max_steps = self.max_steps if max_steps is None else max_steps
        for _ in range(max_steps):
            if not self.advance():
                logger.debug('finished execution after %d steps', self.steps)
                return True
        if self.halted:
            return True
        logger.debug('program stopped b/c exceeding max step of %d', max_steps)
        return False

    def __call__(self, machine_code:str, assembly_linenos:Optional[List[int]]=None,
                 ram:Optional[Dict[int, int]]=None)->bool:
        self.load(machine_code, assembly_linenos, ram)
        return self.run()

    def __repr__(self):
        state = {'PC': self.pc, 'A': self.A, 'D': self.D, 'RAM[0:16]': self.ram[:16].tolist()}
        return f'HackMachine(\n{pretty_format_dict(state)}\n)'


class Assembler:

    def __init__(self, free_address:int=VARIABLE_BASE):
        self.free_address = free_address

    def load(self, assembly_code:str, first_pass:bool):
        self.code = assembly_code
        self.parser = Parser(StringIO(self.code))

        if first_pass:
            self.symbol_table = SymbolTable()
            self.next_address = self.free_address

            # first pass of code: populate symbol table with (xxx)
            # needed b/c @xxx may refer to labeled symbol
            while True:
                ok, _, _ = self.advance(first_pass=True)
                if not ok: break

    def advance(self, first_pass:bool)->Tuple[bool, str, int]:
        'get to the next command, return ok, machine_code, assembly_code_lineno'
        # if first pass, only handle (xxx) for labels b/c @xxx may refer to later label
        while True:
            ok, command, ass_lineno = self.parser.advance()
            if not ok:
                return False, "no more input", ass_lineno
            ct = self.parser.commandType(command)
            if ct == CommandType.C_COMMAND:
                dest, comp, jump = self.parser.dest(command), self.parser.comp(command), self.parser.jump(command)
                return True, f'111{Code.comp[comp]}{Code.dest[dest]}{Code.jump[jump]}', ass_lineno

            symbol = self.parser.symbol(command)
            if ct == CommandType.L_COMMAND:
                if first_pass:
                    self.symbol_table.addEntry(symbol, self.parser.machine_code_lineno)
                continue

            if isInt(symbol): # e.g., @128
                address = int(symbol)
                if not 0 <= address < (1 << 15):
                    raise AssemblerError(f'{command} does not fit in an A instruction', command)
            elif self.symbol_table.contains(symbol):
                address = self.symbol_table.getAddress(symbol)
            elif first_pass:
                address = 0
            else: # allocate new memory on second pass b/c @i can refer to later (symbol)
                address = self.next_address
                self.next_address += 1
                self.symbol_table.addEntry(symbol, address)
            return True, f'0{dec2bin(address, 15)}', ass_lineno

    def __call__(self, assembly_code:str)->Tuple[str, List[int]]:
        '''given ass code, return (machine code, corresponding ass_code_linenos)'''
        self.load(assembly_code, first_pass=True)

        # second pass
        self.load(assembly_code, first_pass=False)
        codes = []
        ass_linenos = []
        while True:
            ok, code, ass_lineno = self.advance(first_pass=False)
            if not ok: break
            codes.append(code)
            ass_linenos.append(ass_lineno)
        return '\n'.join(codes), ass_linenos

    def __repr__(self):
        return f'Assembler(free_address={self.free_address}, symbol_table=\n{self.symbol_table}\n)'

def run_assembly(assembly_code:str, ram:Optional[Dict[int, int]]=None,
                 max_steps:int=100000, memory_size:int=MEMORY_SIZE)->Machine:
    '''assemble and execute, return the machine in its final state'''
    machine_code, ass_linenos = Assembler()(assembly_code)
    machine = Machine(memory_size=memory_size, max_steps=max_steps)
    machine(machine_code, ass_linenos, ram)
    return machine
