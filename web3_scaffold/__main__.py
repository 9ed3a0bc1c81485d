import sys

from web3_scaffold.cli import main

sys.exit(main())
