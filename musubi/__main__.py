import sys

from musubi.cli import main

sys.exit(main())
