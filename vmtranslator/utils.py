import json
from typing import List, Dict

WORD_SIZE = 16 # 16 width for hack machine
WORD_MASK = (1 << WORD_SIZE) - 1

def to_unsigned(dec:int, word_size:int=WORD_SIZE)->int:
    # reinterpret an int as its word_size 2's complement unsigned value, e.g., -1 becomes 65535
    return dec & ((1 << word_size) - 1)

def to_signed(dec:int, word_size:int=WORD_SIZE)->int:
    # wrap an int into the signed range of a word, e.g., 32768 becomes -32768
    dec = to_unsigned(dec, word_size)
    if dec >> (word_size - 1):
        return dec - (1 << word_size)
    return dec

def dec2bin(dec:int, n_digits:int)->str:
    # decimal to binary in 2's complement notation
    return format(to_unsigned(dec, n_digits), f'0{n_digits}b')

def bin2dec(b:str)->int:
    ''' convert binary number str to dec int
    this function uses 2's complement to interpret the int
    that is if b start with 1 it is treated as negative'''
    assert b and sum(c not in '01' for c in b) == 0, f'{b} is not binary'
    return to_signed(int(b, 2), len(b))

def isInt(s:str)->bool:
    try:
        int(s)
        return True
    except ValueError:
        return False

def lineStrip(code:str)->List[str]:
    # split a multi line template into non empty stripped lines
    return list(filter(lambda x: x != "",
                       map(lambda x: x.strip(), code.split('\n'))))

def pretty_format_dict(d: Dict)->str:
    return json.dumps(d, indent=4, default=str)

def binary_add(a:int, b:int, word_size:int=WORD_SIZE)->int:
    return to_signed(a + b, word_size)

def binary_neg(d:int, word_size:int=WORD_SIZE)->int:
    return to_signed(-d, word_size)

def binary_flip(d:int, word_size:int=WORD_SIZE)->int:
    return to_signed(~d, word_size)

def binary_and(a:int, b:int, word_size:int=WORD_SIZE)->int:
    return to_signed(a & b, word_size)

def binary_or(a:int, b:int, word_size:int=WORD_SIZE)->int:
    return to_signed(a | b, word_size)
