import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from vmtranslator.assembler import run_assembly
from vmtranslator.errors import VMError
from vmtranslator.translator import Translator

logger = logging.getLogger('vmtranslator.cli')


def build_parser()->argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog='vmtranslator',
                                description='Translate VM code into Hack assembly.')
    p.add_argument('path', help='a .vm file or a directory of .vm files')
    p.add_argument('-o', '--output', help='output .asm path (default: beside the input)')
    p.add_argument('-v', '--verbose', action='store_true',
                   help='echo every vm command as a comment in the output')
    boot = p.add_mutually_exclusive_group()
    boot.add_argument('--bootstrap', dest='bootstrap', action='store_true', default=None,
                      help='emit the bootstrap code (default for directories)')
    boot.add_argument('--no-bootstrap', dest='bootstrap', action='store_false',
                      help='never emit the bootstrap code')
    p.set_defaults(bootstrap=None)
    p.add_argument('--simulate', type=int, metavar='STEPS',
                   help='run the output on the Hack simulator for at most STEPS instructions')
    p.add_argument('--log-level', default='WARNING',
                   choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return p


def main(argv:Optional[List[str]]=None)->int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(levelname)s %(name)s: %(message)s')

    path = Path(args.path)
    translator = Translator(verbose=args.verbose, bootstrap=args.bootstrap)
    try:
        output = translator.write(path, args.output)
    except (VMError, OSError, ValueError) as e:
        logger.error('%s', e)
        return 1
    print(output)

    if args.simulate is not None:
        try:
            machine = run_assembly(output.read_text(), max_steps=args.simulate)
        except VMError as e:
            logger.error('%s', e)
            return 1
        sp = machine[0]
        print(f'steps: {machine.steps} halted: {machine.halted}')
        print(f'SP: {sp} LCL: {machine[1]} ARG: {machine[2]} THIS: {machine[3]} THAT: {machine[4]}')
        if sp > 256:
            print('stack:', [machine[a] for a in range(256, sp)])
    return 0


if __name__ == '__main__':
    sys.exit(main())
