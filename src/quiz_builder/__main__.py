"""Allow ``python -m quiz_builder``."""

from quiz_builder.cli import main

raise SystemExit(main())
