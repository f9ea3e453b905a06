import sys

from mapwatch.cli import main

sys.exit(main())
