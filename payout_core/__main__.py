import sys

from payout_core.cli import main

sys.exit(main())
