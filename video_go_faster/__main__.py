import sys

from video_go_faster.cli import main

sys.exit(main())
