import sys

from tickavg.demo import main

sys.exit(main())
