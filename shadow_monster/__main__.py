import sys

from shadow_monster.cli import main

if __name__ == "__main__":
    sys.exit(main())
