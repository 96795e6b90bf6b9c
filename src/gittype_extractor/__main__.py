import sys

from gittype_extractor.cli import main

sys.exit(main())
