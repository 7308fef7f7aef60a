import sys

from example_exporter.cli import main

sys.exit(main())
