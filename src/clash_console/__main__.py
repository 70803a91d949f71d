import sys

from clash_console.cli import main


sys.exit(main())
