#!/usr/bin/env python3
import sys
import os

# Make talento_local importable when run from the repo root
sys.path.append(os.getcwd())

from alembic.config import main

if __name__ == '__main__':
    sys.exit(main())
