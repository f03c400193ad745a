import sys

from tpibox.cli.app import main


sys.exit(main())
