import logging
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Tuple

from vmtranslator.code_writer import CodeWriter
from vmtranslator.errors import VMError
from vmtranslator.parser import parse
from vmtranslator.source import sanitize, discover, output_path
from vmtranslator.utils import pretty_format_dict

logger = logging.getLogger('vmtranslator.translator')

BOOTSTRAP_SOURCE = 'bootstrap'


class Translation(NamedTuple):
    lines: List[str] # assembly code
    sources: List[Tuple[str, int]] # (vm file, 0 based lineno) of each assembly line

    @property
    def text(self)->str:
        return '\n'.join(self.lines) + '\n'


class Translator:
    '''
    VM code -> Assembly code

    a translation unit is a single .vm file or a directory of them; the files
    of a directory share one CodeWriter, so one label namespace and one
    return subroutine, and are preceded by the bootstrap code
    '''
    def __init__(self, verbose:bool=False, bootstrap:Optional[bool]=None):
        self.verbose = verbose # echo every vm command as a comment
        self.bootstrap = bootstrap # None: only for directories

    def load(self, sources:Dict[str, str]):
        '''sources: vm file name (without .vm) -> vm code, in translation order'''
        self.writer = CodeWriter()
        self.sanitizedCodes = {} # fname -> {"codes", "linenos"}
        for fname, text in sources.items():
            pairs = sanitize(text.splitlines())
            self.sanitizedCodes[fname] = {
                "codes": [code for code, _ in pairs],
                "linenos": [lineno for _, lineno in pairs],
            }
        logger.debug('code sanitized\n%s', pretty_format_dict(self.sanitizedCodes))

    def translate_sources(self, sources:Dict[str, str], bootstrap:bool=False)->Translation:
        '''
        given vm code per file,
        return the assembly code and the vm line each assembly line comes from
        '''
        self.load(sources)
        lines, tgtRef2srcRef = [], []

        def collect(ass_codes:List[str], ref:Tuple[str, int]):
            lines.extend(ass_codes)
            tgtRef2srcRef.extend([ref] * len(ass_codes))

        if bootstrap:
            if self.verbose:
                collect(self.writer.writeComment(BOOTSTRAP_SOURCE), (BOOTSTRAP_SOURCE, 0))
            collect(self.writer.writeBootstrap(), (BOOTSTRAP_SOURCE, 0))

        for fname, v in self.sanitizedCodes.items():
            logger.debug('translating %s (%d commands)', fname, len(v["codes"]))
            self.writer.setFileName(fname)
            for code, lineno in zip(v["codes"], v["linenos"]):
                try:
                    command = parse(code)
                    if self.verbose:
                        collect(self.writer.writeComment(code), (fname, lineno))
                    collect(self.writer.generate(command), (fname, lineno))
                except VMError as e:
                    raise e.locate(f'{fname}.vm', lineno)

        return Translation(lines, tgtRef2srcRef)

    def translate(self, path:Path)->Translation:
        'translate a .vm file or a directory of .vm files'
        path = Path(path)
        files = discover(path)
        bootstrap = path.is_dir() if self.bootstrap is None else self.bootstrap
        sources = {}
        for fname in files:
            sources[fname.stem] = fname.read_text()
        logger.debug('translation unit %s: %s', path, [f.name for f in files])
        return self.translate_sources(sources, bootstrap=bootstrap)

    def write(self, path:Path, output:Optional[Path]=None)->Path:
        '''translate path and write the .asm file; nothing is written when translation fails'''
        translation = self.translate(path)
        output = Path(output) if output is not None else output_path(path)
        output.write_text(translation.text)
        logger.info('wrote %d lines to %s', len(translation.lines), output)
        return output

    def __call__(self, path:Path)->Translation:
        return self.translate(path)
