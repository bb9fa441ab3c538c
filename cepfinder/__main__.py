"""Allow ``python -m cepfinder``."""

import sys

from cepfinder.main import main

sys.exit(main())
