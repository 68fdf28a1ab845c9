"""Allow ``python -m k6dash``."""

from .main import main

raise SystemExit(main())
