import sys

from workflow_cache.cli import main


sys.exit(main())
