from __future__ import annotations

import sys

from strudel_cli.daemon.server import main

sys.exit(main())
