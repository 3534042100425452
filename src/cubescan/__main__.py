import sys

from cubescan.main import main

sys.exit(main())
