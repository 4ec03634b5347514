import sys

from aahbuild.cli import main

sys.exit(main())
