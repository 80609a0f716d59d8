import sys

from video2doc.cli import main

sys.exit(main())
