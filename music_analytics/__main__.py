import sys

from music_analytics.cli import main

sys.exit(main())
