import sys

from cdh_exporter.main import main

sys.exit(main())
