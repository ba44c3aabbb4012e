"""
Pytest fixtures: translate vm code, assemble it and run it on the Hack machine.
"""
import textwrap
from typing import NamedTuple, Dict, Optional

import pytest

from vmtranslator.assembler import Assembler, Machine, SymbolTable
from vmtranslator.translator import Translator, Translation

# the usual test harness layout: stack at 256, segments well apart
DEFAULT_RAM = {0: 256, 1: 300, 2: 400, 3: 3000, 4: 3010}


class Run(NamedTuple):
    machine: Machine
    symbols: SymbolTable
    translation: Translation


def vm(src:str)->str:
    return textwrap.dedent(src).strip("\n") + "\n"


def _run(sources, bootstrap:bool=False, ram:Optional[Dict[int, int]]=None, max_steps:int=100000)->Run:
    if isinstance(sources, str):
        sources = {"Main": sources}
    sources = {name: vm(text) for name, text in sources.items()}
    translation = Translator().translate_sources(sources, bootstrap=bootstrap)
    assembler = Assembler()
    machine_code, ass_linenos = assembler(translation.text)
    machine = Machine(max_steps=max_steps)
    if ram is None:
        ram = {} if bootstrap else DEFAULT_RAM
    machine(machine_code, ass_linenos, ram)
    return Run(machine, assembler.symbol_table, translation)


@pytest.fixture
def run_vm():
    return _run
