import sys

import rotator

sys.exit(rotator.main())
