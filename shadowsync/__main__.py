import sys

from shadowsync.main import main

raise SystemExit(main(sys.argv[1:]))
