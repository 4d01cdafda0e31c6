"""cmdstream entry point.

Supports: python -m cmdstream
"""

from .app import main

if __name__ == "__main__":
    main()
