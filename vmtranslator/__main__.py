import sys

from vmtranslator.cli import main

sys.exit(main())
