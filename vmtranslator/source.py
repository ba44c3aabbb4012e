from pathlib import Path
from typing import Iterable, List, Tuple

VM_SUFFIX = '.vm'
ASM_SUFFIX = '.asm'
LINE_COMMENT = '//'
BLOCK_COMMENT_OPEN = '/*'
BLOCK_COMMENT_CLOSE = '*/'

def _stripComments(l:str, in_comment:bool)->Tuple[str, bool]:
    'remove comments from one line, return (code, still inside a /* */ comment)'
    code = ''
    while True:
        if in_comment:
            close = l.find(BLOCK_COMMENT_CLOSE)
            if close == -1:
                # comment continue to open, ignore the rest of the line
                return code, True
            l = l[close+len(BLOCK_COMMENT_CLOSE):]
            in_comment = False
        line_start, block_start = l.find(LINE_COMMENT), l.find(BLOCK_COMMENT_OPEN)
        if block_start == -1 or (line_start != -1 and line_start < block_start):
            if line_start != -1:
                l = l[:line_start]
            return code + l, False
        code += l[:block_start] + ' '
        l = l[block_start+len(BLOCK_COMMENT_OPEN):]
        in_comment = True

def sanitize(codes:Iterable[str])->List[Tuple[str, int]]:
    '''
    strip out comments e.g. // or /* comment */ and blank lines
    return a list of (command, lineno in original code), lineno is 0 based
    '''
    result = []
    in_comment = False
    for lineno, l in enumerate(codes):
        l, in_comment = _stripComments(l, in_comment)
        l = l.strip()
        if l != '':
            result.append((l, lineno))
    return result

def discover(path:Path)->List[Path]:
    '''the .vm files of a translation unit; a directory's files come sorted by name'''
    path = Path(path)
    if path.is_dir():
        return sorted((p for p in path.iterdir() if p.is_file() and p.suffix == VM_SUFFIX),
                      key=lambda p: p.name)
    if not path.exists():
        raise FileNotFoundError(f'{path} does not exist')
    if path.suffix != VM_SUFFIX:
        raise ValueError(f'{path} is not a {VM_SUFFIX} file')
    return [path]

def output_path(path:Path)->Path:
    'Prog/ -> Prog/Prog.asm, Prog/Main.vm -> Prog/Main.asm'
    path = Path(path)
    if path.is_dir():
        return path / (path.resolve().name + ASM_SUFFIX)
    return path.with_suffix(ASM_SUFFIX)
