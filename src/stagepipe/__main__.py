import sys

from stagepipe.cli import main

sys.exit(main())
