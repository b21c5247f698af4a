import sys

from interrogative.cli import main

sys.exit(main())
