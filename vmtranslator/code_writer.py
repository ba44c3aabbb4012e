import logging
from typing import List, Optional

from vmtranslator.commands import (
    Command, CommandType, Comparison, Segment,
    Arithmetic, Compare, Push, Pop, Call,
)
from vmtranslator.errors import InvalidOperand
from vmtranslator.utils import lineStrip, WORD_MASK

logger = logging.getLogger('vmtranslator.code_writer')

STACK_BASE = 256 # stack lives in M[256:2048]
POINTER_BASE = 3 # THIS, THAT
TEMP_BASE = 5 # M[5:13]
TEMP_SIZE = 8
MAX_A_VALUE = (1 << 15) - 1 # an A instruction only carries 15 bits
ENTRY_FUNCTION = 'Sys.init'

# system labels start with $ so they cannot clash with vm function or label names
RETURN_LABEL = '$RETURN'
COMP_LABEL = '$COMP_END'
BOOTSTRAP_FILE = 'BOOTSTRAP'

# scratch registers used by return, the temp segment stays untouched
FRAME = 'R13'
RETURN_ADDRESS = 'R14'

# jump taken when the comparison is false
FALSE_JUMPS = {
    Comparison.EQ: 'JNE',
    Comparison.GT: 'JLE',
    Comparison.LT: 'JGE',
}

BINARY_OPS = {
    'add': 'M=D+M',
    'sub': 'M=M-D',
    'and': 'M=D&M',
    'or': 'M=D|M',
}

UNARY_OPS = {
    'neg': 'M=-M',
    'not': 'M=!M',
}

class CodeWriter:
    '''
    VM command -> assembly code

    owns the translation state of one program: the current file (keys static
    variables), the current function (qualifies labels), the comparison and
    call counters (unique system labels) and whether the shared return
    subroutine was emitted. Every fragment is also appended to self.lines,
    which is never rewritten.
    '''
    def __init__(self, file_name:Optional[str]=None):
        self.file_name = file_name
        self.current_function = None # useful for label: func_name$label
        self.comparison_count = 0
        self.call_count = 0
        self.return_emitted = False
        self.lines: List[str] = []

    def setFileName(self, file_name:str):
        'start translating a new .vm file, e.g., Main for Main.vm'
        self.file_name = file_name
        self.current_function = None

    def writeComment(self, text:str)->List[str]:
        return self._emit([f'// {text}'])

    def writeBootstrap(self)->List[str]:
        '''SP = 256, then call Sys.init 0'''
        ass_codes = lineStrip(
            f'''
            @{STACK_BASE}
            D=A
            @SP
            M=D
            '''
        )
        file_name, self.file_name = self.file_name, self.file_name or BOOTSTRAP_FILE
        ass_codes += self._assCall(Call(ENTRY_FUNCTION, 0))
        self.file_name = file_name
        return self._emit(ass_codes)

    def generate(self, command:Command)->List[str]:
        "given a vm command output its assembly codes"
        ct = command.command_type
        if ct is CommandType.C_ARITHMETIC:
            if isinstance(command, Compare):
                ass_codes = self._assCompare(command.comparison)
            else:
                ass_codes = self._assArithmetic(command)
        elif ct is CommandType.C_PUSH:
            ass_codes = self._assPush(command)
        elif ct is CommandType.C_POP:
            ass_codes = self._assPop(command)
        elif ct is CommandType.C_LABEL:
            ass_codes = [f'({self._qualify(command.name)})']
        elif ct is CommandType.C_GOTO:
            ass_codes = [f'@{self._qualify(command.name)}', '0;JMP']
        elif ct is CommandType.C_IF:
            ass_codes = self._assPopToD() + [f'@{self._qualify(command.name)}', 'D;JNE']
        elif ct is CommandType.C_FUNCTION:
            self.current_function = command.name
            ass_codes = self._assFunc(command.name, command.n_locals)
        elif ct is CommandType.C_CALL:
            ass_codes = self._assCall(command)
        elif ct is CommandType.C_RETURN:
            ass_codes = self._assReturn()
        else:
            assert False, f'command {ct} not handled'
        return self._emit(ass_codes)

    def _emit(self, ass_codes:List[str])->List[str]:
        self.lines.extend(ass_codes)
        return ass_codes

    def _qualify(self, label:str)->str:
        # labels are scoped to their function; before any function, to their file
        scope = self.current_function if self.current_function is not None else self.file_name
        return f'{scope}${label}'

    def _assConstantToD(self, value:int)->List[str]:
        '''D = value, value is a 16 bit unsigned word'''
        value &= WORD_MASK
        if value <= MAX_A_VALUE:
            return [f'@{value}', 'D=A']
        # too wide for an A instruction, load the complement and flip it
        return [f'@{~value & WORD_MASK}', 'D=!A']

    def _assSubtractFromD(self, value:int)->List[str]:
        '''D = D - value'''
        value &= WORD_MASK
        if value <= MAX_A_VALUE:
            return [f'@{value}', 'D=D-A']
        # D - value == D + !value + 1
        return [f'@{~value & WORD_MASK}', 'D=D+A', 'D=D+1']

    def _assPushD(self)->List[str]:
        '''push D to stack'''
        return lineStrip(
            '''
            @SP
            M=M+1
            A=M-1
            M=D
            '''
        )

    def _assPopToD(self)->List[str]:
        'D=stack.pop()'
        return lineStrip(
            '''
            @SP
            AM=M-1
            D=M
            '''
        )

    def _assArithmetic(self, command:Arithmetic)->List[str]:
        if command.is_unary:
            # operate in place on the top of the stack
            return ['@SP', 'A=M-1', UNARY_OPS[command.op]]
        # D = y, then x = x op y in place
        return self._assPopToD() + ['A=A-1', BINARY_OPS[command.op]]

    def _assCompare(self, comparison:Comparison)->List[str]:
        '''
        top = x - y, then leave D = x - y when false and D = x - y + 1 when
        true, so that top - D is 0 or -1
        '''
        end_label = f'{COMP_LABEL}.{self.comparison_count}'
        self.comparison_count += 1
        return self._assPopToD() + lineStrip(
            f'''
            A=A-1
            MD=M-D
            @{end_label}
            D;{FALSE_JUMPS[comparison]}
            D=D+1
            ({end_label})
            @SP
            A=M-1
            M=M-D
            '''
        )

    def _address(self, segment:Segment, index:int)->str:
        'symbol or address of a fixed window segment cell'
        if segment is Segment.STATIC:
            assert self.file_name is not None, 'static access needs a file name'
            return f'{self.file_name}.{index}'
        if segment is Segment.POINTER:
            if index > 1:
                raise InvalidOperand(f'pointer index {index} is not 0 or 1')
            return 'THIS' if index == 0 else 'THAT'
        if segment is Segment.TEMP:
            if index >= TEMP_SIZE:
                raise InvalidOperand(f'temp index {index} is out of 0..{TEMP_SIZE - 1}')
            return str(TEMP_BASE + index)
        assert False, f'{segment} is not a fixed window segment'

    def _assPush(self, command:Push)->List[str]:
        segment, index = command.segment, command.index
        # load value into D
        if segment is Segment.CONSTANT:
            ret = self._assConstantToD(index)
        elif segment.is_indirect:
            # D = M[M[base] + index]
            ret = self._assConstantToD(index) + lineStrip(
                f'''
                @{segment.base_symbol}
                A=D+M
                D=M
                '''
            )
        else:
            ret = [f'@{self._address(segment, index)}', 'D=M']
        return ret + self._assPushD()

    def _assPop(self, command:Pop)->List[str]:
        segment, index = command.segment, command.index
        assert segment is not Segment.CONSTANT, 'cannot pop to constant'
        if segment.is_indirect:
            # D holds the target address and is reused for the popped value,
            # so fold both into D and separate them again through A
            return self._assConstantToD(index) + lineStrip(
                f'''
                @{segment.base_symbol}
                D=D+M
                @SP
                AM=M-1
                D=D+M
                A=D-M
                M=D-A
                '''
            )
        return self._assPopToD() + [f'@{self._address(segment, index)}', 'M=D']

    def _assFunc(self, func_name:str, n_local:int)->List[str]:
        'entry label, then zero n_local cells above SP'
        ass_codes = [f'({func_name})']
        if n_local == 0:
            return ass_codes
        ass_codes.extend(['@SP', 'A=M'])
        for i in range(n_local):
            if i > 0:
                ass_codes.append('A=A+1')
            ass_codes.append('M=0')
        ass_codes.extend(lineStrip(
            '''
            D=A+1
            @SP
            M=D
            '''
        ))
        return ass_codes

    def _assCall(self, command:Call)->List[str]:
        return_address = f'$RET.{self.file_name}.{self.call_count}'
        self.call_count += 1

        # push return-address
        ass_codes = [f'@{return_address}', 'D=A'] + self._assPushD()
        # push the caller's frame
        for base in ['LCL', 'ARG', 'THIS', 'THAT']:
            ass_codes.extend([f'@{base}', 'D=M'] + self._assPushD())
        # arg = SP - n_args - 5; 5 b/c we just pushed 5 elements
        ass_codes.extend(['@SP', 'D=M'] + self._assSubtractFromD(5 + command.n_args))
        ass_codes.extend(lineStrip(
            f'''
            @ARG
            M=D
            @SP
            D=M
            @LCL
            M=D
            @{command.name}
            0;JMP
            ({return_address})
            '''
        ))
        return ass_codes

    def _assReturn(self)->List[str]:
        jump = [f'@{RETURN_LABEL}', '0;JMP']
        if self.return_emitted:
            return jump
        self.return_emitted = True
        logger.debug('emitting shared return subroutine in %s', self.current_function)
        # stack looks like [arguments, ret_addr, prev_lcl, prev_arg, prev_this, prev_that, locals..., value]
        # frame = LCL, the return address is saved before the return value can overwrite it,
        # M[ARG] = stack.pop(), SP = ARG+1, then THAT, THIS, ARG, LCL = M[frame-1], ..., M[frame-4]
        return jump + lineStrip(
            f'''
            ({RETURN_LABEL})
            @LCL
            D=M
            @{FRAME}
            M=D
            @5
            A=D-A
            D=M
            @{RETURN_ADDRESS}
            M=D
            @SP
            AM=M-1
            D=M
            @ARG
            A=M
            M=D
            @ARG
            D=M+1
            @SP
            M=D
            @{FRAME}
            AM=M-1
            D=M
            @THAT
            M=D
            @{FRAME}
            AM=M-1
            D=M
            @THIS
            M=D
            @{FRAME}
            AM=M-1
            D=M
            @ARG
            M=D
            @{FRAME}
            AM=M-1
            D=M
            @LCL
            M=D
            @{RETURN_ADDRESS}
            A=M
            0;JMP
            '''
        )
