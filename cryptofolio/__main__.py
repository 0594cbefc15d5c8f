"""Entry point for ``python -m cryptofolio``."""
from .cli import main

if __name__ == "__main__":
    main()
