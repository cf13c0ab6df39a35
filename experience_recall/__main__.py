import sys

from experience_recall.cli import main

sys.exit(main())
