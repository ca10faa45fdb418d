"""Allow ``python -m batchget``."""

from batchget.core import main

raise SystemExit(main())
