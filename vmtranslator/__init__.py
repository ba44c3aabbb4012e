from vmtranslator.code_writer import CodeWriter
from vmtranslator.errors import VMError, UnknownCommand, MalformedCommand, InvalidOperand
from vmtranslator.parser import parse
from vmtranslator.translator import Translator, Translation

__version__ = '0.1.0'
